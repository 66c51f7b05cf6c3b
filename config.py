"""
Configuration management for Stripe Payment Links -> Mailchimp sync
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PURCHASE_TEMPLATE = "repeater_spl_purchases"
MODULE_NAME = "StripePlMailchimpSync"
LOG_CHANNEL = "spl_mailchimp"

# A resync pass never looks at more records than this
RESYNC_LIMIT = 1000
# Extends a "to" date to the last second of that day
END_OF_DAY_SECONDS = 86399


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database Configuration
    database_url: str = Field(default="")

    # Application Settings
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/spl_mailchimp.log")

    # Host bindings
    purchase_template: str = Field(default=PURCHASE_TEMPLATE)
    module_name: str = Field(default=MODULE_NAME)

    # Mailchimp request timeout in seconds
    mailchimp_timeout: float = Field(default=20.0)

    @field_validator("mailchimp_timeout")
    @classmethod
    def clamp_timeout(cls, value: float) -> float:
        return min(max(value, 10.0), 20.0)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


def _as_bool(value: Any) -> bool:
    """Checkbox values arrive as "1", "on", "", None or real booleans"""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "on", "yes")
    return bool(value)


_email_adapter = TypeAdapter(EmailStr)


def sanitize_email(value: Any) -> str:
    """Normalized email address, or "" if it is not a valid one"""
    email = str(value or "").strip()
    if not email:
        return ""
    try:
        return _email_adapter.validate_python(email)
    except ValidationError:
        return ""


class SyncConfig(BaseModel):
    """
    Module settings as persisted by the host config store.

    Field aliases are the keys used on the wire and in storage.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    mailchimp_api_key: str = Field(default="", alias="mailchimpApiKey")
    mailchimp_audience_id: str = Field(default="", alias="mailchimpAudienceId")
    create_if_missing: bool = Field(default=False, alias="createIfMissing")

    # Resync filters (transient)
    resync_email: str = Field(default="", alias="resyncEmail")
    resync_from: Optional[int] = Field(default=None, alias="resyncFrom")
    resync_to: Optional[int] = Field(default=None, alias="resyncTo")
    resync_dry_run: bool = Field(default=False, alias="resyncDryRun")
    resync_unsynced_only: bool = Field(default=False, alias="resyncUnsyncedOnly")
    resync_run: bool = Field(default=False, alias="resyncRun")

    @field_validator("mailchimp_api_key", "mailchimp_audience_id", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator(
        "create_if_missing", "resync_dry_run", "resync_unsynced_only", "resync_run",
        mode="before",
    )
    @classmethod
    def coerce_checkbox(cls, value: Any) -> bool:
        return _as_bool(value)

    @field_validator("resync_from", "resync_to", mode="before")
    @classmethod
    def coerce_timestamp(cls, value: Any) -> Optional[int]:
        # 0 and "" both mean "no date"
        if value in (None, ""):
            return None
        return int(value) or None

    @field_validator("resync_email", mode="before")
    @classmethod
    def coerce_email(cls, value: Any) -> str:
        return sanitize_email(value)

    def to_store(self) -> Dict[str, Any]:
        """Serialize with the storage keys"""
        return self.model_dump(by_alias=True)


def config_fields(config: SyncConfig, report: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Describe the admin settings form.

    Args:
        config: Current module settings
        report: One-shot resync report to show below the resync fieldset

    Returns:
        List of field descriptors (name, label, type, value, ...)
    """
    fields: List[Dict[str, Any]] = [
        {"name": "mailchimpApiKey", "label": "Mailchimp API Key", "type": "text",
         "value": config.mailchimp_api_key},
        {"name": "mailchimpAudienceId", "label": "Mailchimp Audience ID", "type": "text",
         "value": config.mailchimp_audience_id, "columnWidth": 50},
        {"name": "createIfMissing", "label": "Create new subscriber if not existing",
         "type": "checkbox", "value": config.create_if_missing, "columnWidth": 50,
         "notes": "Be sure to inform your customers and provide an opt-out."},
    ]

    resync = [
        {"name": "resyncEmail", "label": "Filter by buyer email (optional)", "type": "email",
         "value": config.resync_email, "placeholder": "name@example.com", "columnWidth": 33},
        {"name": "resyncFrom", "label": "From purchase date (optional)", "type": "date",
         "value": config.resync_from, "placeholder": "YYYY-MM-DD", "columnWidth": 33},
        {"name": "resyncTo", "label": "To purchase date (optional)", "type": "date",
         "value": config.resync_to, "placeholder": "YYYY-MM-DD", "columnWidth": 33},
        {"name": "resyncDryRun", "label": "Dry-run (log only, no Mailchimp calls)",
         "type": "checkbox", "value": config.resync_dry_run, "columnWidth": 50},
        {"name": "resyncUnsyncedOnly", "label": "Only unsynced items", "type": "checkbox",
         "value": config.resync_unsynced_only, "columnWidth": 50},
        {"name": "resyncRun", "label": "Run resync now", "type": "checkbox", "value": False},
    ]
    if report:
        resync.append({"name": "resyncReport", "label": "Resync report", "type": "markup",
                       "value": report})

    fields.append({"name": "resync", "label": "Mailchimp Resync", "type": "fieldset",
                   "children": resync})
    return fields


# Global settings instance
settings = Settings()
