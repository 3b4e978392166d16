# widgetkit/services/exceptions.py

class ServiceException(Exception):
    """Base exception for all service layer errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

class NotFoundError(ServiceException):
    """Raised when a schema with the requested widget key does not exist."""
    pass

class DuplicateWidgetKeyError(ServiceException):
    """Raised when creating or renaming a schema onto a widget key already in use."""
    pass

class InvalidSchemaBundleError(ServiceException):
    """Raised when an import payload is neither an export bundle nor a single schema."""
    pass

class ConfigurationError(ServiceException):
    """Raised if a required system configuration (e.g., the default schemas directory) is missing."""
    pass
