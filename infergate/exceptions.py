"""Exception types raised by the gateway core."""

from typing import Sequence

from .models import ValidationError


class InferGateError(Exception):
    """Base class for gateway errors."""


class ValidationFailed(InferGateError):
    """The inbound request violated one or more constraints."""

    def __init__(self, errors: Sequence[ValidationError]):
        self.errors = list(errors)
        super().__init__("; ".join(f"{error.field}: {error.message}" for error in self.errors))


class LedgerError(InferGateError):
    pass


class RecordNotFoundError(LedgerError):
    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"inference request {record_id} does not exist")


class LedgerStateError(LedgerError):
    """A terminal update was attempted on a record that is already terminal."""

    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"inference request {record_id} already has a terminal outcome")


class SubmissionStateError(InferGateError):
    """A retry controller was driven outside its state machine."""
