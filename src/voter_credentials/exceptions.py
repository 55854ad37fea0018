"""
Custom exception classes for the voter credential system.

Every error carries a human-readable message, a context dictionary and a
stable error code so that provisioning failures can be logged in structured
form. Context values are limited to identifiers, lengths and operation
names; biometric templates and their digests are never attached.
"""

from typing import Optional, Dict, Any


class VoterCredentialError(Exception):
    """
    Base exception class for all voter credential errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    context : dict, optional
        Additional context information about the error.
    error_code : str, optional
        Unique error code for programmatic handling.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        self.error_code = error_code
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return a formatted string representation of the error."""
        parts = [self.message]

        if self.error_code:
            parts.append(f"[Error Code: {self.error_code}]")

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"[Context: {context_str}]")

        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the exception to a dictionary for structured logging.

        Returns
        -------
        dict
            Dictionary representation of the exception.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class CredentialError(VoterCredentialError):
    """
    Exception raised for errors while deriving a voter credential.

    This covers template validation, identifier validation and failures of
    the secure random source.
    """

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs) -> None:
        context = kwargs.get("context", {})
        if operation:
            context["operation"] = operation

        super().__init__(message, context, kwargs.get("error_code"))


class InvalidTemplateLength(CredentialError):
    """
    Exception raised when a biometric template has the wrong byte length.

    ``expected_length`` of 0 means any non-empty length was acceptable.
    ``actual_type`` is set when the template was not a byte string at all.
    """

    def __init__(
        self,
        actual_length: Optional[int],
        expected_length: int,
        actual_type: Optional[str] = None,
    ) -> None:
        if actual_type is not None:
            message = f"Biometric template must be bytes, got {actual_type}"
        elif expected_length == 0:
            message = "Biometric template must not be empty"
        else:
            message = (
                f"Biometric template must be {expected_length} bytes, "
                f"got {actual_length}"
            )
        context = {"actual_length": actual_length, "expected_length": expected_length}
        if actual_type is not None:
            context["actual_type"] = actual_type
        super().__init__(
            message,
            operation="template_validation",
            context=context,
            error_code="CRED_001",
        )


class RandomnessUnavailable(CredentialError):
    """
    Exception raised when the secure random source cannot produce bytes.

    This error is fatal for a provisioning run: a weaker substitute source
    would make tags and helpers linkable.
    """

    def __init__(self, message: str, source: str = "unknown", **kwargs) -> None:
        context = {"random_source": source}
        context.update(kwargs.get("context", {}))
        super().__init__(
            message,
            operation="random_generation",
            context=context,
            error_code="CRED_002",
        )


class InvalidIdentifier(CredentialError):
    """Exception raised when a citizen identifier is empty or not a string."""

    def __init__(self, identifier: Any) -> None:
        message = "Identifier must be a non-empty string"
        context = {"identifier_type": type(identifier).__name__}
        super().__init__(
            message,
            operation="identifier_validation",
            context=context,
            error_code="CRED_003",
        )


class RecordError(VoterCredentialError):
    """Exception raised for errors related to stored voter records."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        field_name: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.get("context", {})
        if identifier:
            context["identifier"] = identifier
        if field_name:
            context["field"] = field_name

        super().__init__(message, context, kwargs.get("error_code"))


class MalformedRecord(RecordError):
    """
    Exception raised when a voter record fails structural validation.

    At verification time this indicates storage corruption or tampering.
    """

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            identifier=identifier,
            field_name=field_name,
            error_code="RECORD_001",
        )


class ProvisioningError(VoterCredentialError):
    """Exception raised for errors while provisioning a batch of voters."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        batch_id: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.get("context", {})
        if identifier is not None:
            context["identifier"] = identifier
        if batch_id:
            context["batch_id"] = batch_id

        super().__init__(message, context, kwargs.get("error_code"))


class DuplicateIdentifier(ProvisioningError):
    """Exception raised when an identifier appears twice in one batch."""

    def __init__(self, identifier: str, batch_id: Optional[str] = None) -> None:
        message = f"Duplicate identifier in batch: {identifier}"
        super().__init__(
            message,
            identifier=identifier,
            batch_id=batch_id,
            error_code="BATCH_001",
        )


class BatchProvisioningError(ProvisioningError):
    """
    Exception raised when a batch is aborted.

    The whole batch is discarded; ``identifier`` names the record that failed
    and ``cause`` holds the underlying error.
    """

    def __init__(
        self,
        identifier: str,
        cause: BaseException,
        batch_id: Optional[str] = None,
    ) -> None:
        self.identifier = identifier
        self.cause = cause
        message = (
            f"Batch provisioning aborted at identifier {identifier}: "
            f"{type(cause).__name__}: {getattr(cause, 'message', cause)}"
        )
        context = {"cause_type": type(cause).__name__}
        cause_code = getattr(cause, "error_code", None)
        if cause_code:
            context["cause_code"] = cause_code
        super().__init__(
            message,
            identifier=identifier,
            batch_id=batch_id,
            context=context,
            error_code="BATCH_002",
        )


class TemplateSourceError(ProvisioningError):
    """Exception raised when a template source cannot supply a template."""

    def __init__(self, message: str, identifier: Optional[str] = None) -> None:
        super().__init__(message, identifier=identifier, error_code="BATCH_003")


class RegistryFileError(VoterCredentialError):
    """Exception raised when a registry or dev map file cannot be read or written."""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs) -> None:
        context = kwargs.get("context", {})
        if file_path:
            context["file_path"] = file_path

        super().__init__(message, context, kwargs.get("error_code", "IO_001"))


class ConfigurationError(VoterCredentialError):
    """
    Exception raised for configuration-related errors.

    This includes invalid configuration values and attempts to produce
    development-only artifacts from a production run.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key
        if config_value:
            context["config_value"] = config_value

        super().__init__(message, context, kwargs.get("error_code", "CONFIG_001"))


class BenchmarkError(VoterCredentialError):
    """Exception raised when a performance benchmark cannot produce results."""

    def __init__(self, message: str, benchmark_type: str) -> None:
        super().__init__(
            message, context={"benchmark_type": benchmark_type}, error_code="BENCH_001"
        )
