from __future__ import annotations

"""Installer error taxonomy.

CONTRACT
- Inputs: human-readable message (raw error text from the failing operation)
- Outputs:
  - SetupError subclasses carried inside StepResult
- Invariants:
  - str(error) is the text surfaced to the user on abort
  - `advisory` marks errors that never stop the sequence on their own
- Failure:
  - None
"""


class SetupError(Exception):
    """Base class for every installer failure."""

    advisory: bool = False


class MissingTool(SetupError):
    """A required tool is not on PATH and could not be installed."""


class FilesystemError(SetupError):
    """A directory or file operation failed."""


class BuildFailure(SetupError):
    """Dependency install, build, or post-sync install failed."""


class RegistryWriteError(SetupError):
    advisory = True


class ServiceUnreachable(SetupError):
    advisory = True


class PrewarmFailure(SetupError):
    advisory = True
