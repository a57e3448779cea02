"""
Core constants — **Single Source of Truth** for project-wide magic values.

Any business rule that references a role code, a size limit or an
identifier format should import it from here instead of hardcoding.
"""

import re

# ── Role codes ──────────────────────────────────────────────────────
# ``Role.name`` holds one of these codes.
ADMIN = "admin"
PUBLIC_VIEWER = "public_viewer"
INVESTIGATOR = "investigator"
FORENSIC_ANALYST = "forensic_analyst"
LEGAL_PROFESSIONAL = "legal_professional"
COURT_OFFICIAL = "court_official"
EVIDENCE_MANAGER = "evidence_manager"
AUDITOR = "auditor"

# Roles a visitor may pick during self-registration.  ``admin`` is
# intentionally excluded.
ALLOWED_ROLES: tuple[str, ...] = (
    PUBLIC_VIEWER,
    INVESTIGATOR,
    FORENSIC_ANALYST,
    LEGAL_PROFESSIONAL,
    COURT_OFFICIAL,
    EVIDENCE_MANAGER,
    AUDITOR,
)

ALL_ROLES: tuple[str, ...] = ALLOWED_ROLES + (ADMIN,)

# ── Identity formats ────────────────────────────────────────────────
WALLET_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}\Z")
SHA256_HEX_RE = re.compile(r"^(0x)?[a-fA-F0-9]{64}\Z")

# Default organisational unit for self-registered users.
DEFAULT_DEPARTMENT = "General"
DEFAULT_JURISDICTION = "General"

# ── Evidence upload limits (MIME type → max size in MB) ─────────────
EVIDENCE_MAX_SIZE_MB: dict[str, int] = {
    "application/pdf": 100,
    "image/jpeg": 50,
    "image/jpg": 50,
    "image/png": 50,
    "image/gif": 25,
    "video/mp4": 500,
    "video/avi": 500,
    "video/quicktime": 500,
    "audio/mpeg": 100,
    "audio/wav": 200,
    "audio/m4a": 100,
    "application/msword": 50,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": 50,
    "text/plain": 10,
}

MAX_BULK_EXPORT = 50


def is_valid_wallet(value: object) -> bool:
    """Return ``True`` for a ``0x``-prefixed 40-hex-digit address."""
    return isinstance(value, str) and WALLET_ADDRESS_RE.match(value) is not None
