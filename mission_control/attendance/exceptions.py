"""Business-rule failures of the attendance flow.

Each carries the human-readable reason shown to the member who triggered it.
They are never broadcast.
"""


class AttendanceError(Exception):
    message = "Attendance could not be recorded."

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class NotPermitted(AttendanceError):
    message = "Only admins can start an attendance session."


class SessionAlreadyRunning(AttendanceError):
    message = "An attendance session is already running."


class SessionNotFound(AttendanceError):
    message = "Attendance session expired or not found."


class IncorrectCode(AttendanceError):
    message = "Incorrect code, try again."


class AlreadyMarked(AttendanceError):
    message = "Attendance already marked today."
