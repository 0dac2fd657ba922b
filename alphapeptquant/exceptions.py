"""Module containing custom exceptions."""

from typing import Optional


class QuantError(Exception):
    """Custom alphapeptquant error class."""

    _error_code = ""
    _msg = ""
    _detail_msg = ""
    _user_msg = ""

    @property
    def error_code(self):
        return self._error_code

    @property
    def msg(self):
        return self._msg

    @property
    def detail_msg(self):
        return self._detail_msg

    @property
    def user_msg(self):
        return self._user_msg

    def __init__(self, msg: str = ""):
        self._user_msg = msg

        super().__init__(self._msg)

    def __str__(self):
        return (
            f"{self._error_code}: {self._msg}\n'{self._user_msg}'\n{self._detail_msg}"
        )


class ConfigurationError(QuantError):
    """Raise when labels, masses, parameters or output paths are unusable.

    Configuration errors abort a batch before any event is processed.
    """

    _error_code = "CONFIGURATION_ERROR"
    _msg = "Invalid quantitation configuration."

    def __init__(self, msg: str, run_name: Optional[str] = None):
        self.run_name = run_name
        self._detail_msg = f"Run: {run_name}" if run_name else ""
        super().__init__(msg)


class EventError(QuantError):
    """Raise when a single quantitation event cannot be processed.

    Event errors are recoverable: the batch driver records them and moves on.
    """

    _error_code = "EVENT_ERROR"
    _msg = "Quantitation event could not be evaluated."

    def __init__(
        self,
        msg: str,
        peptide_key: Optional[str] = None,
        run_name: Optional[str] = None,
    ):
        self.peptide_key = peptide_key
        self.run_name = run_name
        self.reason = msg
        self._detail_msg = f"Peptide: {peptide_key}, run: {run_name}"
        super().__init__(msg)
