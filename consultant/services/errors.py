from typing import Optional


class ConsultantError(Exception):
    """Base class for failures surfaced by the consultant services."""


class TransportError(ConsultantError):
    """Network-level failure talking to an upstream API."""


class UpstreamStatus(TransportError):
    def __init__(self, status_code: int, body: str, url: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"Unexpected status {status_code} from {url or 'upstream'}: {body[:500]}")


class ExhaustedRetries(ConsultantError):
    def __init__(self, attempts: int, last_error: Optional[Exception]):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Max retries exceeded after {attempts} attempts: {last_error}")


class Cancelled(ConsultantError):
    """The caller cancelled the operation or its deadline passed."""


class NotFoundError(ConsultantError):
    pass


class AssistantNotConfigured(NotFoundError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"No assistant configured for user {user_id}")


class ProfileNotFound(NotFoundError):
    def __init__(self, profile_name: str):
        self.profile_name = profile_name
        super().__init__(f"Profile not found: {profile_name}")


class EmptyReply(NotFoundError):
    def __init__(self, thread_id: str = ""):
        self.thread_id = thread_id
        super().__init__(f"No reply messages found in thread {thread_id}".strip())


class RunFailed(ConsultantError):
    def __init__(self, run_id: str, status: str, reason: Optional[str] = None):
        self.run_id = run_id
        self.status = status
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Assistant run {run_id} ended with status {status}{detail}")


class RunTimeout(ConsultantError):
    def __init__(self, run_id: str, waited: float):
        self.run_id = run_id
        self.waited = waited
        super().__init__(f"Assistant run {run_id} not finished after {waited:.1f}s")


class PersistenceError(ConsultantError):
    """A store write failed."""
