"""Identity model: the equality key of every descriptor collection."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

IDENTITY_FIELDS: frozenset[str] = frozenset({"name", "version", "type", "extra_identity"})


class Identity(BaseModel):
    """The (name, version, type, extraIdentity) tuple of an entry.

    Two entries describe the same logical object iff their identities are
    equal.  ``relation``, ``access``, ``input`` and ``labels`` never take
    part in identity.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    version: str = ""
    type: str = ""
    extra_identity: dict[str, str] = Field(default_factory=dict, alias="extraIdentity")

    def __hash__(self) -> int:
        return hash(
            (self.name, self.version, self.type, tuple(sorted(self.extra_identity.items())))
        )

    def __str__(self) -> str:
        text = f"{self.name}:{self.version}"
        if self.type:
            text = f"{text} ({self.type})"
        if self.extra_identity:
            extras = ",".join(f"{k}={v}" for k, v in sorted(self.extra_identity.items()))
            text = f"{text} [{extras}]"
        return text
