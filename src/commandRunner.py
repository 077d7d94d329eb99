import logging
import subprocess
import sys
import warnings
from dataclasses import dataclass
from typing import List


@dataclass
class CommandResult:
    command: str
    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def success(self):
        return self.returncode == 0


@dataclass
class Step:
    # name is what gets reported on failure, e.g. "adding CLASS VIP"
    name: str
    command: str


@dataclass
class StepOutcome:
    step: Step
    result: CommandResult

    @property
    def ok(self):
        return self.result.success


class ShaperStepError(Exception):
    """Raised when a configuration phase stops on a failed command."""

    def __init__(self, outcome: StepOutcome):
        self.outcome = outcome
        super().__init__("Error while " + outcome.step.name)

    @property
    def step(self):
        return self.outcome.step


class SudoShellRunner:
    """
    Runs a composed command string through `sh -c`, optionally under sudo.

    Captured stdout/stderr are relayed to our own streams once the command
    finishes. There is no timeout: a hung command hangs the caller.
    """

    def __init__(self, enableActualShellCommands=True, runShellCommandsAsSudo=True):
        self.enableActualShellCommands = enableActualShellCommands
        self.runShellCommandsAsSudo = runShellCommandsAsSudo

    def argv(self, command):
        commands = ['sh', '-c', command]
        if self.runShellCommandsAsSudo:
            commands.insert(0, 'sudo')
        return commands

    def run(self, command) -> CommandResult:
        logging.info(command)
        if not self.enableActualShellCommands:
            return CommandResult(command, 0)
        commands = self.argv(command)
        try:
            proc = subprocess.run(commands, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise SystemError("command not found: " + commands[0]) from e
        sys.stdout.write(proc.stdout)
        sys.stderr.write(proc.stderr)
        if ("RTNETLINK answers" in proc.stderr) or ("We have an error talking to the kernel" in proc.stderr):
            warnings.warn("Command: '" + command + "' resulted in " + proc.stderr.strip(), stacklevel=2)
        logging.debug(f"'{command}' exited with status {proc.returncode}")
        return CommandResult(command, proc.returncode, proc.stdout, proc.stderr)


def runSteps(steps, runner) -> List[StepOutcome]:
    # Strictly in order. The first failed step is the last outcome returned.
    outcomes = []
    for step in steps:
        outcome = StepOutcome(step, runner.run(step.command))
        outcomes.append(outcome)
        if not outcome.ok:
            logging.error(f"Step '{step.name}' failed with status {outcome.result.returncode}: {step.command}")
            break
    return outcomes
