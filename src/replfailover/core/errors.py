"""Exception taxonomy for discovery, evaluation and orchestration."""


class FailoverError(Exception):
    """Base error. Carries the failing step and, where known, a manual remedy."""

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        remedy: str | None = None,
    ):
        super().__init__(message)
        self.step = step
        self.remedy = remedy


class ControlAPIError(FailoverError):
    """Control API call failed or returned an undecodable body."""

    def __init__(
        self,
        message: str,
        *,
        address: str,
        status_code: int | None = None,
        step: str | None = None,
    ):
        super().__init__(message, step=step)
        self.address = address
        self.status_code = status_code


class DiscoveryError(FailoverError):
    """Topology could not be fully discovered."""


class ClientInitError(FailoverError):
    """A single-address client could not be initialized."""


class CredentialBootstrapError(FailoverError):
    """The credential bootstrap collaborator failed."""


class SplitBrainError(FailoverError):
    """Reported roles contradict the expected leader/follower pairing."""


class PollExhaustedError(FailoverError):
    """A bounded convergence wait ran out of attempts."""


class OperatorAbort(FailoverError):
    """Operator declined at a confirmation prompt."""


class OrchestrationError(FailoverError):
    """A failover step failed after earlier steps may have been applied."""

    def __init__(
        self,
        message: str,
        *,
        step: str,
        completed: tuple[str, ...] = (),
        remedy: str | None = None,
    ):
        super().__init__(message, step=step, remedy=remedy)
        self.completed = completed
