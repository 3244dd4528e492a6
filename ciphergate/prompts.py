"""Interactive operator prompts used during registration."""

import getpass
from abc import ABC, abstractmethod


class Prompter(ABC):
    """Operator input capability injected into the activation state machine."""

    @abstractmethod
    def prompt_line(self, message: str) -> str:
        pass

    @abstractmethod
    def prompt_password(self, message: str) -> str:
        """Read a secret without echo."""
        pass

    def prompt_verification_code(self) -> str:
        return self.prompt_line("Please enter the verification code received over SMS: ").strip()


class ConsolePrompter(Prompter):
    """Prompts on the controlling terminal."""

    def prompt_line(self, message: str) -> str:
        return input(message)

    def prompt_password(self, message: str) -> str:
        return getpass.getpass(message)
