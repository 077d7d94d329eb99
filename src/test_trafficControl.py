import unittest

from commandRunner import CommandResult
from shaperCommon import ShaperConfig
from trafficControl import buildTrafficControlSteps, setupTrafficControl


class RecordingRunner:
    def __init__(self, failOn=None):
        self.commands = []
        self.failOn = failOn

    def run(self, command):
        self.commands.append(command)
        if self.failOn == len(self.commands):
            return CommandResult(command, 2, '', 'RTNETLINK answers: File exists\n')
        return CommandResult(command, 0)


class TestTrafficControl(unittest.TestCase):
    def test_default_commands(self):
        runner = RecordingRunner()
        outcomes = setupTrafficControl(ShaperConfig(), runner)
        self.assertEqual(runner.commands, [
            'tc qdisc add dev wlan0 root handle 1:0 htb default 10',
            'tc class add dev wlan0 parent 1:0 classid 1:10 htb rate 120kbps ceil 120kbps prio 0',
            'tc class add dev wlan0 parent 1:1 classid 1:5 htb rate 256kbps ceil 256kbps prio 1',
            'tc filter add dev wlan0 parent 1:1 prio 1 handle 5 fw flowid 1:5',
        ])
        self.assertEqual(len(outcomes), 4)
        self.assertTrue(all(outcome.ok for outcome in outcomes))

    def test_values_are_substituted(self):
        config = ShaperConfig(interface='eth1', rootHandle='2:0', vipRootHandle='2:2', classID='2:20',
                              vipClassID='2:7', defaultRate='1mbit', vipRate='10mbit', vipMark=7)
        commands = [step.command for step in buildTrafficControlSteps(config)]
        self.assertEqual(commands, [
            'tc qdisc add dev eth1 root handle 2:0 htb default 20',
            'tc class add dev eth1 parent 2:0 classid 2:20 htb rate 1mbit ceil 1mbit prio 0',
            'tc class add dev eth1 parent 2:2 classid 2:7 htb rate 10mbit ceil 10mbit prio 1',
            'tc filter add dev eth1 parent 2:2 prio 1 handle 7 fw flowid 2:7',
        ])

    def test_step_names(self):
        names = [step.name for step in buildTrafficControlSteps(ShaperConfig())]
        self.assertEqual(names, ['adding QDISC', 'adding CLASS', 'adding CLASS VIP', 'adding FILTER VIP'])

    def test_stops_at_first_failure(self):
        for failOn in range(1, 5):
            with self.subTest(failOn=failOn):
                runner = RecordingRunner(failOn=failOn)
                outcomes = setupTrafficControl(ShaperConfig(), runner)
                self.assertEqual(len(runner.commands), failOn)
                self.assertEqual(len(outcomes), failOn)
                self.assertFalse(outcomes[-1].ok)
                self.assertTrue(all(outcome.ok for outcome in outcomes[:-1]))


if __name__ == '__main__':
    unittest.main()
