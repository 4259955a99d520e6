"""Exception hierarchy for taxokey.

All errors raised by taxokey derive from TaxokeyError so callers can catch
one base class. The merge core itself never raises for bad candidate data:
unresolvable references are dropped and counted instead. These exceptions
belong to the collaborators around it (configuration, payload parsing,
project files).
"""


class TaxokeyError(Exception):
    """Base class for all taxokey errors."""

    pass


class ConfigError(TaxokeyError):
    """Configuration file or values are invalid.

    Raised when:
    - Config file cannot be read
    - YAML syntax is invalid
    - Pydantic validation fails
    """

    pass


class PayloadError(TaxokeyError):
    """AI or import payload cannot be turned into a candidate project."""

    pass


class TraitPayloadError(PayloadError):
    """A single entity's trait map is malformed.

    Handled per entity by the payload adapter: the entity keeps its
    pre-existing traits and the rest of the batch proceeds.
    """

    pass


class StorageError(TaxokeyError):
    """Project file operation failed.

    Raised when:
    - File not found during load
    - Invalid JSON or YAML syntax
    - Schema validation fails
    - Atomic write fails
    """

    pass
