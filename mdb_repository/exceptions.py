"""
Custom exceptions for MDB_REPOSITORY.

Errors raised by the underlying store (``pymongo.errors``) and by mappers are
never wrapped; the classes below only cover conditions detected by this
package itself.
"""

from typing import Any, Dict, Optional


class RepositoryError(RuntimeError):
    """
    Base exception for repository errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (collection_name,
                 doc_id, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class InvalidPageTokenError(RepositoryError):
    """
    Raised when a page token cannot be used.

    Covers tokens that fail to decode (bad base64, bad JSON, wrong field
    types), tokens written with an unknown format version, and tokens whose
    direction is neither ``next`` nor ``prev``.

    Attributes:
        token: The offending token (if available)
        reason: Short machine-readable reason
    """

    def __init__(
        self,
        message: str,
        token: Optional[str] = None,
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if reason:
            context["reason"] = reason
        super().__init__(message, context=context)
        self.token = token
        self.reason = reason


class InvalidFilterError(RepositoryError):
    """
    Raised when a where or order-by clause cannot be translated into a query.

    Attributes:
        field: Field named by the clause
        condition: Condition or direction that was not recognised
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        condition: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if field:
            context["field"] = field
        if condition:
            context["condition"] = condition
        super().__init__(message, context=context)
        self.field = field
        self.condition = condition


class DocumentNotFoundError(RepositoryError):
    """
    Raised when an update or delete requires an existing document and none matched.

    Attributes:
        doc_id: Identifier of the missing document
        collection_name: Collection that was searched
    """

    def __init__(
        self,
        message: str,
        doc_id: Optional[str] = None,
        collection_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if doc_id is not None:
            context["doc_id"] = doc_id
        if collection_name:
            context["collection_name"] = collection_name
        super().__init__(message, context=context)
        self.doc_id = doc_id
        self.collection_name = collection_name


class ConfigurationError(RepositoryError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class InitializationError(RepositoryError):
    """
    Raised when the MongoDB connection cannot be established.

    Attributes:
        mongo_uri: MongoDB connection URI (if available)
        db_name: Database name (if available)
    """

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if mongo_uri:
            context["mongo_uri"] = mongo_uri
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.mongo_uri = mongo_uri
        self.db_name = db_name
