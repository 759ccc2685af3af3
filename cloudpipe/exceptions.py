class ServiceException(Exception):
    """Base exception for service layer errors"""
    def __init__(self, message, error_code=None, status_code=400, **context):
        self.message = message
        self.error_code = error_code or 'SERVICE_ERROR'
        self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def __str__(self):
        return self.message

class AuthenticationError(ServiceException):
    """Raised when authentication fails"""
    def __init__(self, message="Authentication failed", error_code=None):
        super().__init__(
            message=message,
            error_code=error_code or 'AUTH_ERROR',
            status_code=401
        )

class AuthorizationError(ServiceException):
    """Raised when user doesn't have required permissions"""
    def __init__(self, message="Authorization failed", error_code=None):
        super().__init__(
            message=message,
            error_code=error_code or 'FORBIDDEN',
            status_code=403
        )

class ValidationError(ServiceException):
    """Raised when input validation fails"""
    def __init__(self, message="Validation failed", error_code=None):
        super().__init__(
            message=message,
            error_code=error_code or 'VALIDATION_ERROR',
            status_code=400
        )

class DatabaseError(ServiceException):
    """Raised when a persistence call fails"""
    def __init__(self, message="Database operation failed", **context):
        super().__init__(message, 'DATABASE_ERROR', 500, **context)


# Lookups

class NotFoundError(ServiceException):
    """Raised when a requested record does not exist"""
    def __init__(self, message="Not found", error_code=None, **context):
        super().__init__(message, error_code or 'NOT_FOUND', 404, **context)

class ClusterNotFoundError(NotFoundError):
    def __init__(self, organisation_id, cluster):
        super().__init__(
            "Cluster not found",
            'CLUSTER_NOT_FOUND',
            organisation_id=organisation_id,
            cluster=cluster
        )

class SpotguideNotFoundError(NotFoundError):
    def __init__(self, name):
        super().__init__(f"Spotguide not found: {name}", 'SPOTGUIDE_NOT_FOUND', spotguide=name)


# Cluster resolution

class ResolutionFailedError(ServiceException):
    """Raised when a cluster record exists but cannot be turned into a handle"""
    def __init__(self, message="Could not resolve cluster", error_code=None, **context):
        super().__init__(message, error_code or 'RESOLUTION_FAILED', 500, **context)

class UnsupportedProviderError(ResolutionFailedError):
    def __init__(self, cloud, **context):
        super().__init__(
            f"Unsupported cluster provider: {cloud}",
            'UNSUPPORTED_PROVIDER',
            cloud=cloud,
            **context
        )


# External services

class UpstreamAPIError(ServiceException):
    """Raised when a call to GitHub or Drone fails"""
    def __init__(self, message, status=None, **context):
        self.status = status
        super().__init__(message, 'UPSTREAM_API_ERROR', 502, status=status, **context)

    @property
    def not_found(self) -> bool:
        return self.status == 404

class ContentExtractionError(ServiceException):
    """Raised when template content cannot be turned into tree entries"""
    def __init__(self, message, error_code=None, **context):
        super().__init__(message, error_code or 'CONTENT_EXTRACTION_FAILED', 502, **context)

class SourceReleaseNotFoundError(ContentExtractionError):
    def __init__(self, repository, tag):
        super().__init__(
            f"Release '{tag}' not found for {repository}",
            'SOURCE_RELEASE_NOT_FOUND',
            repository=repository,
            tag=tag
        )

class DownloadFailedError(ContentExtractionError):
    def __init__(self, repository, url):
        super().__init__(
            f"Failed to download release archive of {repository}",
            'DOWNLOAD_FAILED',
            repository=repository,
            url=url
        )

class InvalidSpotguideError(ServiceException):
    """Raised when a stored spotguide manifest no longer decodes"""
    def __init__(self, name):
        super().__init__(f"Spotguide manifest of {name} is invalid", 'INVALID_SPOTGUIDE', 500, spotguide=name)

class ScrapeFailedError(ServiceException):
    def __init__(self, message, **context):
        super().__init__(message, 'SCRAPE_FAILED', 502, **context)


# Spotguide launch

class LaunchFailedError(ServiceException):
    """Base for launch pipeline failures; `stage` is the last stage reached"""
    def __init__(self, message, error_code, stage, status_code=502, **context):
        self.stage = stage
        super().__init__(message, error_code, status_code, stage=stage.value, **context)

class TemplateNotFoundError(LaunchFailedError):
    def __init__(self, name, stage):
        super().__init__(
            f"Spotguide template not found: {name}",
            'TEMPLATE_NOT_FOUND',
            stage,
            status_code=404,
            spotguide=name
        )

class SecretCreationFailedError(LaunchFailedError):
    def __init__(self, secret_name, stage, **context):
        super().__init__(
            f"Failed to create spotguide secret: {secret_name}",
            'SECRET_CREATION_FAILED',
            stage,
            secret=secret_name,
            **context
        )

class RepositoryCreationFailedError(LaunchFailedError):
    def __init__(self, message, stage, **context):
        super().__init__(message, 'REPOSITORY_CREATION_FAILED', stage, **context)

class CIEnableFailedError(LaunchFailedError):
    def __init__(self, message, stage, **context):
        super().__init__(message, 'CI_ENABLE_FAILED', stage, **context)
