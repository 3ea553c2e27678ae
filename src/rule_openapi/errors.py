"""Exceptions raised by the OpenAPI generation engine.

All of them signal a configuration or programming error: generation stops
and no partial document is returned.
"""


class RuleOpenApiError(Exception):
    """Base class for every engine error."""


class ConverterNotInitializedError(RuleOpenApiError):
    """The rule converter has no mapping table or no base string mapper."""


class MultipartRootSchemaError(RuleOpenApiError):
    """A multipart upload route declares a root-level rule schema."""


class UnresolvedReferenceError(RuleOpenApiError):
    """A generated $ref does not point at a stored component."""

    def __init__(self, ref: str):
        super().__init__(f"fail to get component from reference {ref!r}")
        self.ref = ref


class MissingActionError(RuleOpenApiError):
    """A request body has to be generated for a route without bound action."""


class UnsupportedVersionError(RuleOpenApiError):
    """The requested OpenAPI version is not supported."""
