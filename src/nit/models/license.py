"""License settings — a named preset or an inline custom body.

The configured setting is resolved into the structure written to the
AssetTree's ``license`` field. Resolution happens on every add, so the
license of a new version follows local configuration, not history.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any


CUSTOM_LICENSE = "custom"

PRESET_LICENSES: dict[str, dict[str, str]] = {
    "cc-by": {
        "name": "CC-BY-4.0",
        "document": "https://creativecommons.org/licenses/by/4.0/legalcode",
    },
    "cc-by-sa": {
        "name": "CC-BY-SA-4.0",
        "document": "https://creativecommons.org/licenses/by-sa/4.0/legalcode",
    },
    "cc-by-nd": {
        "name": "CC-BY-ND-4.0",
        "document": "https://creativecommons.org/licenses/by-nd/4.0/legalcode",
    },
    "cc-by-nc": {
        "name": "CC-BY-NC-4.0",
        "document": "https://creativecommons.org/licenses/by-nc/4.0/legalcode",
    },
    "cc-by-nc-sa": {
        "name": "CC-BY-NC-SA-4.0",
        "document": "https://creativecommons.org/licenses/by-nc-sa/4.0/legalcode",
    },
    "cc-by-nc-nd": {
        "name": "CC-BY-NC-ND-4.0",
        "document": "https://creativecommons.org/licenses/by-nc-nd/4.0/legalcode",
    },
    "cc0": {
        "name": "CC0-1.0",
        "document": "https://creativecommons.org/publicdomain/zero/1.0/legalcode",
    },
    "mit": {
        "name": "MIT",
        "document": "https://opensource.org/licenses/MIT",
    },
}

DEFAULT_LICENSE = "cc-by-nc"


class LicenseKind(str, enum.Enum):
    PRESET = "preset"
    CUSTOM = "custom"


@dataclass(frozen=True)
class LicenseSetting:
    """Configured license: Preset(name) or Custom(body)."""
    kind: LicenseKind
    name: str = ""
    body: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def preset(name: str) -> LicenseSetting:
        if name not in PRESET_LICENSES:
            raise ValueError(
                f"Unknown license preset: {name} "
                f"(expected one of {', '.join(sorted(PRESET_LICENSES))} or '{CUSTOM_LICENSE}')"
            )
        return LicenseSetting(kind=LicenseKind.PRESET, name=name)

    @staticmethod
    def custom(body: dict[str, Any]) -> LicenseSetting:
        return LicenseSetting(kind=LicenseKind.CUSTOM, name=CUSTOM_LICENSE, body=dict(body))

    @staticmethod
    def from_config(license_name: str, license_content: Any = None) -> LicenseSetting:
        """Build a setting from the config's ``license`` / ``licenseContent`` pair.

        ``licenseContent`` may be a JSON object or a JSON-encoded string.
        """
        if license_name != CUSTOM_LICENSE:
            return LicenseSetting.preset(license_name)
        if isinstance(license_content, str) and license_content.strip():
            license_content = json.loads(license_content)
        if not isinstance(license_content, dict):
            raise ValueError("Custom license requires a JSON object in licenseContent")
        return LicenseSetting.custom(license_content)

    def resolve(self) -> dict[str, Any]:
        """Return the structure stored in AssetTree.license."""
        if self.kind == LicenseKind.CUSTOM:
            return dict(self.body)
        return dict(PRESET_LICENSES[self.name])
