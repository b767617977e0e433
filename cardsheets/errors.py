import click


class CardSheetsError(click.ClickException):
    """Base error; click prints the message to stderr and exits with status 1."""


class ConfigError(CardSheetsError):
    """A bad flag value or config field. Carries every problem found, not just the first."""

    def __init__(self, messages: list[str] | str, header: str = "Invalid config:"):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        if len(self.messages) == 1 and not header:
            text = self.messages[0]
        else:
            text = "\n- ".join([header, *self.messages])
        super().__init__(text)


class ResolutionError(CardSheetsError):
    """An adventure, deck or card could not be found (or matched more than one thing)."""


class AssetError(CardSheetsError):
    """An image could not be downloaded or decoded."""
