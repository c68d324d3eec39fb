"""
Tracker Configuration domain model.

This module defines the TrackerConfig domain entity containing all
settings consumed by sync, push and the daily digest.
"""

from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from alerttracker.domain.change_types import ResolutionFlagPolicy
from alerttracker.domain.fingerprint import HASH_STRATEGIES

SOURCE_SUFFIXES = (".xlsx", ".xlsm")


class SmtpSettings(BaseModel):
    """Outbound mail settings for the digest and operator alerts."""

    model_config = ConfigDict(extra="forbid")

    host: str = Field("", description="SMTP host; empty disables mail")
    port: int = Field(587, ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = None
    sender: str = Field("alerts-tracker@localhost", description="From address")
    use_tls: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.host.strip())


class TrackerConfig(BaseModel):
    """
    Domain model for tracker configuration.

    An unset enable_writeback is treated as disabled so a missing key can
    never cause external mutation.
    """

    model_config = ConfigDict(extra="ignore")

    source_path: str = Field(..., description="Externally-owned source workbook")
    source_tab: str = Field("Alerts", min_length=1)
    header_row: int = Field(1, ge=1)
    timezone: str = "America/New_York"

    enable_writeback: bool = False
    ready_to_resolve_label: str = "READY TO BE RESOLVED"
    comment_author: str = Field("Horizon", min_length=1)

    tracker_path: str = "output/alerts_tracker.xlsx"
    history_db: str = "output/tracker_history.db"
    lock_path: Optional[str] = None
    lock_wait_seconds: float = Field(5.0, ge=0)

    weekdays_only: bool = True
    email_subject_prefix: str = "LiveRamp Alerts Daily Status"
    error_email: Optional[str] = None
    smtp: SmtpSettings = Field(default_factory=SmtpSettings)

    fingerprint_algorithm: str = "rolling32"
    resolution_flag_policy: ResolutionFlagPolicy = ResolutionFlagPolicy.STICKY

    @field_validator("source_path")
    @classmethod
    def validate_source_path(cls, v: str) -> str:
        """Source must name an Excel workbook; checked before any fetch."""
        v = str(v or "").strip()
        if not v:
            raise ValueError("source_path is not configured")
        if not v.lower().endswith(SOURCE_SUFFIXES):
            raise ValueError(
                f"Invalid source_path format '{v}'. Must be an Excel workbook "
                f"({', '.join(SOURCE_SUFFIXES)})"
            )
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @field_validator("fingerprint_algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v not in HASH_STRATEGIES:
            raise ValueError(
                f"fingerprint_algorithm must be one of {sorted(HASH_STRATEGIES)}"
            )
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def lock_file(self) -> Path:
        if self.lock_path:
            return Path(self.lock_path)
        tracker = Path(self.tracker_path)
        return tracker.with_name(tracker.name + ".lock")

    def masked(self) -> dict:
        """Config dump safe for logs and diagnostics."""
        data = self.model_dump(mode="json")
        if data["smtp"].get("password"):
            data["smtp"]["password"] = "********"
        return data
