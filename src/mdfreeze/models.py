"""Pydantic models for mdfreeze settings and results."""

from typing import Literal

from pydantic import BaseModel, ConfigDict

SaveLocation = Literal["same-directory", "custom-directory"]


class FreezeSettings(BaseModel):
    """User settings controlling where frozen files land and what happens next."""

    model_config = ConfigDict(extra="forbid")

    save_location: SaveLocation = "same-directory"
    custom_directory: str = ""  # Vault-relative, only used with custom-directory
    open_freeze_file: bool = True  # Open the new file after a successful freeze

    @property
    def uses_custom_directory(self) -> bool:
        return self.save_location == "custom-directory" and bool(self.custom_directory)


class FreezeResult(BaseModel):
    """Outcome of a successful freeze-and-save."""

    source: str  # Vault-relative path of the frozen note
    path: str  # Vault-relative path of the created file
    name: str  # File name of the created file


class EmbedInfo(BaseModel):
    """One embed found in a note and what it resolves to."""

    raw: str  # Text between ![[ and ]]
    target: str  # Link path without sub-path or alias
    subpath: str = ""  # Heading or block selector, without the leading '#'
    resolved: str | None = None  # Vault path the target resolves to
    kind: Literal["note", "asset", "missing"]
