from __future__ import annotations


class MeetNotesError(RuntimeError):
    pass


class ConfigError(MeetNotesError):
    pass


class ProjectNotFoundError(MeetNotesError):
    def __init__(self, name: str):
        super().__init__(f'Project "{name}" not found')
        self.name = name


class StorageError(MeetNotesError):
    pass


class CredentialsMissingError(MeetNotesError):
    pass


class ProviderError(MeetNotesError):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
