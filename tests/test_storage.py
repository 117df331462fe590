import unittest

from podhost.config import ProvisionConfig
from podhost.storage import parse_graph_driver, repair_storage_driver
from tests.fakes import FakePackages, FakeShell, fake_caps, result

PODMAN_INFO = """host:
  arch: amd64
  buildahVersion: 1.28.2
store:
  configFile: /home/deploy/.config/containers/storage.conf
  containerStore:
    number: 0
  graphDriverName: {driver}
  graphOptions: {{}}
  graphRoot: /home/deploy/.local/share/containers/storage
"""


def podman_info(driver):
    return result(stdout=PODMAN_INFO.format(driver=driver))


class GraphDriverParsing(unittest.TestCase):

    def test_vfs(self):
        self.assertEqual(parse_graph_driver(PODMAN_INFO.format(driver="vfs")), "vfs")

    def test_overlay(self):
        self.assertEqual(parse_graph_driver(PODMAN_INFO.format(driver="overlay")), "overlay")

    def test_missing_key(self):
        self.assertIsNone(parse_graph_driver("host:\n  arch: amd64\n"))

    def test_similar_key_is_ignored(self):
        self.assertIsNone(parse_graph_driver("  graphDriverNameOld: vfs\n"))


class StorageRepairScenarios(unittest.TestCase):

    def setUp(self):
        self.config = ProvisionConfig()

    def test_vfs_switches_to_fuse_overlayfs(self):
        shell = FakeShell(responses={"podman info": podman_info("vfs")})
        packages = FakePackages()
        outcome = repair_storage_driver(fake_caps(shell, packages), self.config)

        self.assertTrue(outcome.ok)
        self.assertFalse(outcome.skipped)
        self.assertEqual(packages.installed, [["fuse-overlayfs"]])
        self.assertTrue(shell.ran("/usr/bin/fuse-overlayfs --version"))

        storage_conf = shell.files["/etc/containers/storage.conf"]
        self.assertIn('driver = "overlay"', storage_conf)
        self.assertIn('mount_program = "/usr/bin/fuse-overlayfs"', storage_conf)
        self.assertIn(("/etc/containers/storage.conf", True), shell.written)
        self.assertTrue(shell.ran("podman system reset"))

    def test_reset_comes_after_storage_conf(self):
        shell = FakeShell(responses={"podman info": podman_info("vfs")})
        written_before_reset = []

        original_run = shell.run

        def run(command, **kwargs):
            if "podman system reset" in command:
                written_before_reset.append("/etc/containers/storage.conf" in shell.files)
            return original_run(command, **kwargs)

        shell.run = run
        repair_storage_driver(fake_caps(shell), self.config)
        self.assertEqual(written_before_reset, [True])

    def test_other_driver_is_left_alone(self):
        shell = FakeShell(responses={"podman info": podman_info("overlay")})
        packages = FakePackages()
        outcome = repair_storage_driver(fake_caps(shell, packages), self.config)

        self.assertTrue(outcome.skipped)
        self.assertEqual(packages.installed, [])
        self.assertNotIn("/etc/containers/storage.conf", shell.files)
        self.assertFalse(shell.ran("podman system reset"))

    def test_unreadable_podman_info_is_left_alone(self):
        shell = FakeShell(responses={"podman info": result(exited=125, stderr="cannot connect")})
        packages = FakePackages()
        outcome = repair_storage_driver(fake_caps(shell, packages), self.config)

        self.assertTrue(outcome.skipped)
        self.assertEqual(packages.installed, [])

    def test_missing_fuse_overlayfs_fails(self):
        shell = FakeShell(responses={
            "podman info": podman_info("vfs"),
            "fuse-overlayfs --version": result(exited=127, stderr="No such file or directory"),
        })
        outcome = repair_storage_driver(fake_caps(shell, FakePackages(ok=False)), self.config)

        self.assertFalse(outcome.ok)
        self.assertIn("fuse-overlayfs installation failed", outcome.detail)
        self.assertNotIn("/etc/containers/storage.conf", shell.files)
        self.assertFalse(shell.ran("podman system reset"))

    def test_failed_reset_is_reported_but_not_fatal(self):
        shell = FakeShell(responses={
            "podman info": podman_info("vfs"),
            "podman system reset": result(exited=1),
        })
        outcome = repair_storage_driver(fake_caps(shell), self.config)
        self.assertTrue(outcome.ok)
        self.assertIn("reset pending", outcome.detail)


if __name__ == '__main__':
    unittest.main()
