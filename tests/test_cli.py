import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from click.testing import CliRunner

from picksafe.cli.commands import cli
from picksafe.core import vault
from picksafe.core.safe import Safe


class TestPickCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        self.path = str(Path(self.tmp.name) / "pick.safe")

    def tearDown(self):
        self.tmp.cleanup()

    def invoke(self, *args, input=None):
        return self.runner.invoke(cli, ['--safe', self.path, *args], input=input)

    def add_github(self):
        result = self.invoke('add', 'github', 'bob', 's3cr3t', input='y\nmypass\nmypass\n')
        self.assertEqual(result.exit_code, 0, result.output)
        return result

    def test_add_creates_safe(self):
        result = self.add_github()
        self.assertIn('Credential saved', result.output)
        self.assertTrue(vault.exists(self.path))
        credential = vault.get_credential(vault.load(self.path, "mypass"), "github")
        self.assertEqual((credential.username, credential.password), ("bob", "s3cr3t"))

    def test_add_declined_without_safe(self):
        result = self.invoke('add', 'github', 'bob', 's3cr3t', input='n\n')
        self.assertEqual(result.exit_code, 1)
        self.assertIn('You must create or provide a safe', result.output)
        self.assertFalse(vault.exists(self.path))

    def test_add_duplicate(self):
        self.add_github()
        result = self.invoke('add', 'github', 'bob', 'other', input='mypass\n')
        self.assertEqual(result.exit_code, 1)
        self.assertIn("already exists", result.output)

    def test_add_generates_password(self):
        self.add_github()
        result = self.invoke('add', 'site', 'alice', input='mypass\ny\n')
        self.assertEqual(result.exit_code, 0, result.output)
        credential = vault.get_credential(vault.load(self.path, "mypass"), "site")
        self.assertEqual(len(credential.password), 50)

    def test_add_prompts_for_missing_fields(self):
        self.add_github()
        result = self.invoke('add', input='mypass\nmail\nbob@example.com\nn\nhunter2\n')
        self.assertEqual(result.exit_code, 0, result.output)
        credential = vault.get_credential(vault.load(self.path, "mypass"), "mail")
        self.assertEqual((credential.username, credential.password), ("bob@example.com", "hunter2"))

    def test_cat(self):
        self.add_github()
        result = self.invoke('cat', 'github', input='mypass\n')
        self.assertEqual(result.exit_code, 0, result.output)
        shown = json.loads(result.output[result.output.index('{'):])
        self.assertEqual(shown['alias'], 'github')
        self.assertEqual(shown['username'], 'bob')
        self.assertEqual(shown['password'], 's3cr3t')

    def test_cat_wrong_passphrase(self):
        self.add_github()
        result = self.invoke('cat', 'github', input='wrong\n')
        self.assertEqual(result.exit_code, 1)
        self.assertIn('Unable to unlock safe', result.output)

    def test_cat_missing_safe(self):
        result = self.invoke('cat', 'github')
        self.assertEqual(result.exit_code, 1)
        self.assertIn('Safe does not exist', result.output)

    def test_cp(self):
        self.add_github()
        with mock.patch('picksafe.cli.commands.pyperclip.copy') as copy:
            result = self.invoke('cp', 'github', input='mypass\n')
        self.assertEqual(result.exit_code, 0, result.output)
        copy.assert_called_once_with('s3cr3t')

    def test_ls(self):
        self.add_github()
        self.invoke('add', 'aws', 'root', 'pw', input='mypass\n')
        result = self.invoke('ls', input='mypass\n')
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output.splitlines()[-2:], ['aws', 'github'])

    def test_ls_empty(self):
        vault.save(Safe(created_by="bob"), self.path, "mypass")
        result = self.invoke('ls', input='mypass\n')
        self.assertEqual(result.exit_code, 1)
        self.assertIn('No credentials in safe', result.output)

    def test_rm(self):
        self.add_github()
        result = self.invoke('rm', 'github', input='mypass\n')
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('Credential removed', result.output)
        result = self.invoke('cat', 'github', input='mypass\n')
        self.assertEqual(result.exit_code, 1)
        self.assertIn("does not exist", result.output)

    def test_gen(self):
        result = self.invoke('gen', '--length', '20')
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(len(result.output.strip()), 20)

    def test_safe_path_from_environment(self):
        result = self.runner.invoke(cli, ['add', 'github', 'bob', 's3cr3t'], input='y\nmypass\nmypass\n',
                                    env={'PICK_SAFE': self.path})
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(vault.exists(self.path))


if __name__ == '__main__':
    unittest.main()
