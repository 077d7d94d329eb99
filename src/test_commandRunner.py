import contextlib
import io
import subprocess
import unittest
from unittest import mock

from commandRunner import CommandResult, Step, SudoShellRunner, runSteps


class TestSudoShellRunner(unittest.TestCase):
    def test_runs_through_sudo_and_echoes_output(self):
        completed = subprocess.CompletedProcess([], 0, 'qdisc added\n', 'note\n')
        stdout = io.StringIO()
        stderr = io.StringIO()
        with mock.patch('commandRunner.subprocess.run', return_value=completed) as run:
            with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
                result = SudoShellRunner().run('tc qdisc show')
        run.assert_called_once_with(['sudo', 'sh', '-c', 'tc qdisc show'], capture_output=True, text=True)
        self.assertTrue(result.success)
        self.assertEqual(result.command, 'tc qdisc show')
        self.assertEqual(result.stdout, 'qdisc added\n')
        self.assertEqual(stdout.getvalue(), 'qdisc added\n')
        self.assertEqual(stderr.getvalue(), 'note\n')

    def test_without_sudo(self):
        runner = SudoShellRunner(runShellCommandsAsSudo=False)
        self.assertEqual(runner.argv('iptables -L'), ['sh', '-c', 'iptables -L'])

    def test_failed_command_is_reported_not_raised(self):
        completed = subprocess.CompletedProcess([], 2, '', 'RTNETLINK answers: File exists\n')
        with mock.patch('commandRunner.subprocess.run', return_value=completed):
            with contextlib.redirect_stderr(io.StringIO()):
                with self.assertWarns(UserWarning):
                    result = SudoShellRunner().run('tc qdisc add dev wlan0 root handle 1:0 htb default 10')
        self.assertFalse(result.success)
        self.assertEqual(result.returncode, 2)

    def test_dry_run_spawns_nothing(self):
        with mock.patch('commandRunner.subprocess.run') as run:
            result = SudoShellRunner(enableActualShellCommands=False).run('tc qdisc show')
        run.assert_not_called()
        self.assertTrue(result.success)
        self.assertEqual(result.stdout, '')

    def test_missing_sudo_is_unrecoverable(self):
        with mock.patch('commandRunner.subprocess.run', side_effect=FileNotFoundError('sudo')):
            with self.assertRaises(SystemError):
                SudoShellRunner().run('tc qdisc show')


class TestRunSteps(unittest.TestCase):
    def test_stops_after_first_failure(self):
        issued = []

        class Runner:
            def run(self, command):
                issued.append(command)
                return CommandResult(command, 1 if command == 'second' else 0)

        steps = [Step('one', 'first'), Step('two', 'second'), Step('three', 'third')]
        with self.assertLogs(level='ERROR'):
            outcomes = runSteps(steps, Runner())
        self.assertEqual(issued, ['first', 'second'])
        self.assertEqual([outcome.ok for outcome in outcomes], [True, False])
        self.assertEqual(outcomes[-1].step.name, 'two')

    def test_empty(self):
        self.assertEqual(runSteps([], None), [])


if __name__ == '__main__':
    unittest.main()
