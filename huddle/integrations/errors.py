"""Errors raised by third-party integrations."""


class IntegrationError(RuntimeError):
    """An upstream API call failed."""

    def __init__(self, service: str, message: str, status_code: int | None = None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class NotConfiguredError(IntegrationError):
    """Credentials for the integration are missing."""

    def __init__(self, service: str, setting: str):
        super().__init__(service, f"not configured (set {setting})")
        self.setting = setting
