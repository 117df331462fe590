import unittest

from podhost.config import OperatorInput, ProvisionConfig
from podhost.ssh_keys import generate_ssh_key, share_public_key
from tests.fakes import FakeShell, fake_caps, result

OPERATOR = OperatorInput(email="ops@example.com", project_name="shop", github_username="acme")


class KeyGeneration(unittest.TestCase):

    def test_existing_key_is_kept(self):
        shell = FakeShell(files={"~/.ssh/id_ed25519": "PRIVATE"})
        outcome = generate_ssh_key(fake_caps(shell), ProvisionConfig(), OPERATOR)
        self.assertTrue(outcome.skipped)
        self.assertFalse(shell.ran("ssh-keygen"))
        self.assertEqual(shell.files["/home/deploy/.ssh/id_ed25519"], "PRIVATE")

    def test_new_key_without_agent(self):
        shell = FakeShell()
        outcome = generate_ssh_key(fake_caps(shell), ProvisionConfig(), OPERATOR)
        self.assertTrue(outcome.ok)
        self.assertFalse(outcome.skipped)
        self.assertTrue(shell.ran("ssh-keygen -t ed25519 -C ops@example.com -f /home/deploy/.ssh/id_ed25519 -N ''"))
        self.assertFalse(shell.ran("ssh-agent"))
        self.assertFalse(shell.ran("ssh-add"))

    def test_keygen_failure(self):
        shell = FakeShell(responses={"ssh-keygen": result(1, stderr="Saving key failed: Permission denied")})
        outcome = generate_ssh_key(fake_caps(shell), ProvisionConfig(), OPERATOR)
        self.assertFalse(outcome.ok)
        self.assertIn("Permission denied", outcome.detail)


class SharingTheKey(unittest.TestCase):

    def test_waits_for_operator(self):
        shell = FakeShell(files={"~/.ssh/id_ed25519.pub": "ssh-ed25519 AAAA ops@example.com\n"})
        prompts = []
        outcome = share_public_key(fake_caps(shell), ProvisionConfig(), OPERATOR, wait=prompts.append)
        self.assertTrue(outcome.ok)
        self.assertEqual(len(prompts), 1)

    def test_missing_public_key(self):
        outcome = share_public_key(fake_caps(FakeShell()), ProvisionConfig(), OPERATOR)
        self.assertFalse(outcome.ok)


if __name__ == '__main__':
    unittest.main()
