"""Configuration models and YAML loader for the document matching engine."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.schemas import AccountRef


class AccountConfig(AccountRef):
    """A configured mailbox account; only active ones are queried."""

    active: bool = True

    def ref(self) -> AccountRef:
        return AccountRef(id=self.id, email=self.email, provider=self.provider)


class SearchSettings(BaseModel):
    """Date window defaults and result limits."""

    days_before: int = Field(default=30, ge=0)
    days_after: int = Field(default=7, ge=0)
    remote_limit: int = Field(default=20, ge=1, le=100)
    body_text_min_length: int = Field(default=4, ge=1)
    max_results: int | None = Field(default=None, ge=1)


class SourceSettings(BaseModel):
    """HTTP endpoint used to query mailbox accounts."""

    base_url: str = "http://localhost:3000/api/gmail"
    timeout_s: float = Field(default=15.0, gt=0.0)
    token_env: str = "DOCMATCH_SOURCE_TOKEN"


class ScoringSettings(BaseModel):
    """Where scoring runs and how scores are labelled."""

    backend: Literal["local", "remote"] = "local"
    remote_url: str | None = None
    timeout_s: float = Field(default=10.0, gt=0.0)
    label_strong: float = Field(default=75.0, ge=0.0, le=100.0)
    label_likely: float = Field(default=40.0, ge=0.0, le=100.0)

    @model_validator(mode="after")
    def remote_needs_url(self) -> "ScoringSettings":
        if self.backend == "remote" and not self.remote_url:
            msg = "scoring.remote_url is required when backend is 'remote'"
            raise ValueError(msg)
        if self.label_likely > self.label_strong:
            msg = "label_likely must not exceed label_strong"
            raise ValueError(msg)
        return self


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    accounts: list[AccountConfig] = Field(default_factory=list)
    search: SearchSettings = Field(default_factory=SearchSettings)
    sources: SourceSettings = Field(default_factory=SourceSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    @field_validator("accounts")
    @classmethod
    def unique_account_ids(cls, v: list[AccountConfig]) -> list[AccountConfig]:
        ids = [a.id for a in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            msg = f"duplicate account ids: {', '.join(duplicates)}"
            raise ValueError(msg)
        return v

    @property
    def connected_accounts(self) -> list[AccountConfig]:
        """Active accounts, in configured order."""
        return [a for a in self.accounts if a.active]

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
