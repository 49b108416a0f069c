"""Typed failures raised by the slot store and the booking coordinator."""


class SlotServiceError(Exception):
    default_message = 'Request could not be completed.'

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SlotServiceError):
    """Malformed or missing input."""
    default_message = 'Invalid input.'


class NotFoundError(SlotServiceError):
    """No slot matches the id, or it belongs to someone else."""
    default_message = 'Slot not found.'


class ConflictError(SlotServiceError):
    """The slot already has a booking depending on it."""
    default_message = 'This slot is already booked and can no longer be changed.'


class SlotUnavailableError(SlotServiceError):
    default_message = 'This time slot is no longer available.'
