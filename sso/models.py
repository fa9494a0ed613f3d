"""
Pydantic models for the persisted SSO settings blob.

The stored layout is::

    {
        "active": bool,
        "passphrase": "<base64, 16 bytes>",
        "hashKey": "<base64, 64 bytes>",
        "access": {
            "example.com": {"name": ..., "id": "<ciphertext>", "secret": "<ciphertext>"},
        },
    }
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class WorkspaceCredential(BaseModel):
    """One workspace's OAuth client; ``client_id``/``client_secret`` are ciphertext."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    client_id: str = Field(default="", alias="id")
    client_secret: str = Field(default="", alias="secret")


class GlobalSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    active: bool = False
    passphrase: str = ""
    hash_key: str = Field(default="", alias="hashKey")
    access: Dict[str, WorkspaceCredential] = Field(default_factory=dict)

    def to_store(self) -> Dict[str, Any]:
        """Serialise to the key-value store layout."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_store(cls, raw: Optional[Dict[str, Any]]) -> "GlobalSettings":
        return cls.model_validate(raw or {})


class ProviderIdentity(BaseModel):
    """Profile facts asserted by the identity provider."""

    email: str
    email_verified: bool = False
    name: Optional[str] = None
    hosted_domain: Optional[str] = None
