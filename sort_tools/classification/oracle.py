"""
Boundary to the external classification service.

The pipeline never talks to a model API directly. Anything with a
``classify(path, options)`` method can act as the oracle; its reply is
normalized into an ``OracleVerdict``.
"""

from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClassificationOptions(BaseModel):
    """Options forwarded unchanged to the oracle."""

    model_config = ConfigDict(frozen=True)

    model: Optional[str] = Field(default=None, description="Model identifier")
    context: Optional[str] = Field(
        default=None, description="Free-form hint about the directory contents"
    )
    language: Optional[str] = Field(
        default=None, description="Language for category names"
    )
    preset: Optional[str] = Field(default=None, description="Named category preset")
    timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Upper bound on a single oracle call"
    )


class OracleVerdict(BaseModel):
    """Category and optional subcategory returned by the oracle."""

    category: str
    subcategory: Optional[str] = None

    @field_validator("category")
    @classmethod
    def _category_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("oracle returned an empty category")
        return value


class ClassificationOracle(Protocol):
    """External classifier.

    Implementations bound their own wait time (see
    ``ClassificationOptions.timeout_seconds``) and raise ``TimeoutError`` or
    ``OracleError(ErrorKind.NETWORK, ...)`` when a call stalls.
    """

    def classify(
        self, path: Path, options: ClassificationOptions
    ) -> Union[OracleVerdict, Mapping[str, Any]]: ...


def to_verdict(reply: Union[OracleVerdict, Mapping[str, Any]]) -> OracleVerdict:
    """Normalize an oracle reply; malformed replies raise ``ValidationError``."""
    if isinstance(reply, OracleVerdict):
        return reply
    return OracleVerdict.model_validate(reply)
