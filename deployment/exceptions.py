"""Exceptions raised while declaring, deploying and recording StakeStark contracts."""


class DeploymentError(Exception):
    """Base exception for deployment failures."""


class ParametersError(DeploymentError, ValueError):
    """Raised when the deployment parameters or environment are unusable."""


class ArtifactError(DeploymentError):
    """Raised when a compiled contract artifact cannot be read or parsed."""


class SubmissionError(DeploymentError):
    """Raised when the node refuses a declare or deploy transaction."""


class ConfirmationError(DeploymentError):
    """Raised when a submitted transaction is reverted, rejected or never received."""


class QueryError(DeploymentError):
    """Raised when a read-only call against a deployed contract fails."""


class RecordWriteError(DeploymentError, OSError):
    """Raised when the deployment record cannot be written."""
