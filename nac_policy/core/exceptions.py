"""
Application Exceptions
Error types raised at the orchestration and strategy boundaries
"""


class NACPolicyError(Exception):
    pass


class NotFoundError(NACPolicyError):
    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class ConfigurationError(NACPolicyError, ValueError):
    pass


class ModelResponseError(NACPolicyError):
    """Raised when the external model call fails or returns unusable output"""
    pass
