from __future__ import annotations


class HookError(Exception):
    """Base class for failures that abort a hook invocation."""


class FetchError(HookError):
    """A single call to the Kubernetes API failed."""


class PortDefinitionsError(HookError):
    pass


class ResolutionTimeout(HookError):
    def __init__(self, elapsed_s: float):
        super().__init__(f"could not get valid pod data after {elapsed_s:.1f}s")
        self.elapsed_s = elapsed_s


class HookCancelled(HookError):
    """The caller cancelled a wait before it completed."""


class NoRegistrablePort(HookError):
    def __init__(self, message: str = "unable to register, cannot find containerPort"):
        super().__init__(message)


class LivenessTimeout(HookError):
    def __init__(self, elapsed_s: float):
        super().__init__(f"service did not become healthy within {elapsed_s:.1f}s")
        self.elapsed_s = elapsed_s


class RegistrationError(HookError):
    pass


class PartialDeregisterFailure(HookError):
    """Raised after every deregistration was attempted and some of them failed."""

    def __init__(self, errors: list[Exception]):
        super().__init__("; ".join(str(e) for e in errors))
        self.errors = errors
