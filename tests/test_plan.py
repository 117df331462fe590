import unittest

from podhost.config import OperatorInput, ProvisionConfig
from podhost.plan import build_plan
from podhost.sequencer import ProvisioningError, Sequencer
from tests.fakes import FakePackages, FakeShell, fake_caps, result

OPERATOR = OperatorInput(email="ops@example.com", project_name="shop", github_username="acme")

ZSHRC = 'plugins=(git nvm)\nsource $ZSH/oh-my-zsh.sh\n'


def _step_names(steps):
    return [s.name for s in steps]


class PlanContents(unittest.TestCase):

    def test_default_order(self):
        names = _step_names(build_plan(fake_caps(), ProvisionConfig(), OPERATOR))
        self.assertEqual(names, [
            "Refresh package index",
            "Install base packages",
            "Install oh-my-zsh",
            "Create Podman Compose virtual environment",
            "Install Podman Compose",
            "Verify Podman Compose",
            "Check Podman storage driver",
            "Configure shell startup files",
            "Generate SSH key",
            "Add SSH key to GitHub",
            "Create project directory",
            "Clone project repository",
            "Install nvm",
            "Install Node.js",
            "Verify Node.js",
            "Verify npm",
            "Configure container registries",
            "Install Hasura CLI",
            "Verify Hasura CLI",
            "Allow rootless binding to low ports",
            "Enable lingering",
            "Enable Podman user service",
            "Configure cgroup manager",
        ])

    def test_only_checks_are_critical(self):
        critical = [s.name for s in build_plan(fake_caps(), ProvisionConfig(), OPERATOR) if s.critical]
        self.assertEqual(critical, [
            "Verify Podman Compose",
            "Check Podman storage driver",
            "Install Node.js",
            "Verify Node.js",
            "Verify npm",
            "Verify Hasura CLI",
        ])

    def test_optional_steps_can_be_disabled(self):
        config = ProvisionConfig(
            shell={"install_oh_my_zsh": False},
            hasura={"enabled": False},
            podman={"enable_linger": False},
            ssh_key={"wait_for_github": False},
        )
        names = _step_names(build_plan(fake_caps(), config, OPERATOR))
        for name in ("Install oh-my-zsh", "Install Hasura CLI", "Verify Hasura CLI",
                     "Enable lingering", "Add SSH key to GitHub"):
            self.assertNotIn(name, names)


class FullRun(unittest.TestCase):

    def setUp(self):
        self.shell = FakeShell(
            files={"~/.bashrc": "", "~/.zshrc": ZSHRC},
            responses={"podman info": result(stdout="store:\n  graphDriverName: overlay\n")},
        )
        self.packages = FakePackages()
        self.caps = fake_caps(self.shell, self.packages)
        self.prompts = []

    def _wait(self, message):
        self.prompts.append(message)
        self.shell.files.setdefault("/home/deploy/.ssh/id_ed25519.pub", "ssh-ed25519 AAAA ops@example.com\n")
        return ""

    def _run(self, config=None):
        sequencer = Sequencer(build_plan(self.caps, config or ProvisionConfig(), OPERATOR, wait=self._wait))
        sequencer.run()
        return sequencer

    def test_everything_succeeds(self):
        self.shell.files["/home/deploy/.ssh/id_ed25519.pub"] = "ssh-ed25519 AAAA ops@example.com\n"
        sequencer = self._run()

        self.assertEqual(sequencer.failures, [])
        self.assertEqual(self.packages.installed[0], ProvisionConfig().podman.packages)
        self.assertFalse(self.packages.was_installed("fuse-overlayfs"))
        self.assertEqual(self.caps.vcs.clones, [("git@github.com:acme/shop.git", "/etc/shop/shop")])
        self.assertEqual(self.caps.services.lingering, ["deploy"])
        self.assertEqual(self.caps.services.enabled, ["podman"])
        self.assertEqual(
            [url for url, _ in self.caps.installers.scripts],
            [
                "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh",
                "https://raw.githubusercontent.com/nvm-sh/nvm/v0.40.1/install.sh",
                "https://github.com/hasura/graphql-engine/raw/stable/cli/get.sh",
            ])
        self.assertEqual(self.prompts, ["Press enter after adding the SSH key to GitHub..."])
        self.assertIn(
            'registries = ["docker.io", "quay.io", "registry.fedoraproject.org"]',
            self.shell.files["/etc/containers/registries.conf"])
        self.assertEqual(
            self.shell.files["/home/deploy/.config/containers/containers.conf"],
            '[engine]\ncgroup_manager = "cgroupfs"\n')
        self.assertIn("net.ipv4.ip_unprivileged_port_start=80", self.shell.files["/etc/sysctl.conf"])
        self.assertTrue(self.shell.ran("chown deploy:deploy /etc/shop"))
        self.assertTrue(self.shell.ran("ssh-keygen -t ed25519 -C ops@example.com"))
        self.assertTrue(self.shell.ran("nvm install --lts"))

    def test_compose_check_failure_stops_before_storage_check(self):
        self.shell.responses = {"podman-compose --version": result(exited=127)}
        with self.assertRaises(ProvisioningError) as ctx:
            self._run()
        self.assertEqual(ctx.exception.step, "Verify Podman Compose")
        self.assertFalse(self.shell.ran("podman info"))
        self.assertFalse(self.shell.ran("ssh-keygen"))

    def test_vfs_driver_is_repaired_during_run(self):
        self.shell.files["/home/deploy/.ssh/id_ed25519.pub"] = "ssh-ed25519 AAAA ops@example.com\n"
        self.shell.responses = {"podman info": result(stdout="  graphDriverName: vfs\n")}
        self._run()
        self.assertTrue(self.packages.was_installed("fuse-overlayfs"))
        self.assertIn('driver = "overlay"', self.shell.files["/etc/containers/storage.conf"])

    def test_failed_package_install_is_best_effort(self):
        self.shell.files["/home/deploy/.ssh/id_ed25519.pub"] = "ssh-ed25519 AAAA ops@example.com\n"
        self.packages.ok = False
        sequencer = self._run()
        self.assertEqual([o.name for o in sequencer.failures], ["Install base packages"])

    def test_node_check_failure_stops_the_run(self):
        self.shell.files["/home/deploy/.ssh/id_ed25519.pub"] = "ssh-ed25519 AAAA ops@example.com\n"
        self.shell.responses = {"npm -v": result(exited=127, stderr="npm: command not found")}
        with self.assertRaises(ProvisioningError) as ctx:
            self._run()
        self.assertEqual(ctx.exception.step, "Verify npm")
        self.assertNotIn("/etc/containers/registries.conf", self.shell.files)

    def test_second_run_does_not_duplicate_configuration(self):
        self.shell.files["/home/deploy/.ssh/id_ed25519.pub"] = "ssh-ed25519 AAAA ops@example.com\n"
        self._run()
        first = dict(self.shell.files)
        self._run()
        self.assertEqual(self.shell.files, first)
        self.assertEqual(
            self.shell.files["/etc/sysctl.conf"].splitlines().count("net.ipv4.ip_unprivileged_port_start=80"), 1)


if __name__ == '__main__':
    unittest.main()
