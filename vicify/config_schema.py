"""
Pydantic model for the persisted Vicify configuration file.

Only ``lastDeviceName`` is managed today; every other key found in the file is
kept as an extra field so that rewrites never clobber it.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VicifyConfig(BaseModel):
    """Schema of ``Vicify.json``.

    Example:
        >>> cfg = VicifyConfig.model_validate({"lastDeviceName": "Office Laptop"})
        >>> cfg.last_device_name
        'Office Laptop'
    """

    model_config = ConfigDict(
        extra="allow",  # Forward compatibility with fields written by newer versions
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    last_device_name: Optional[str] = Field(
        default=None,
        alias="lastDeviceName",
        description="Name of the device last observed as active",
    )

    @field_validator("last_device_name", mode="before")
    @classmethod
    def validate_last_device_name(cls, v: Any) -> Optional[str]:
        """Treat non-string or blank names as absent."""
        if not isinstance(v, str) or not v.strip():
            return None
        return v

    def to_json_safe(self) -> Dict[str, Any]:
        """Dictionary ready for ``json.dump`` using on-disk key names."""
        data = self.model_dump(by_alias=True, mode="json")
        if data.get("lastDeviceName") is None:
            data.pop("lastDeviceName", None)
        return data


def validate_config_dict(config_dict: Dict[str, Any]) -> VicifyConfig:
    """Validate a raw config dictionary.

    Raises:
        ValueError: If the payload cannot be coerced into the schema
    """
    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration must be a JSON object, got {type(config_dict).__name__}")
    try:
        return VicifyConfig.model_validate(config_dict)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}") from e
