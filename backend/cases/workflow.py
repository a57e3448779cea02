"""
Default case workflow seeded by ``setup_rbac``.

``CASE_STATUSES`` rows are ``(code, name, description, color, sort_order,
is_terminal)``; ``CASE_TRANSITIONS`` rows are ``(from_code, to_code,
transition_name, roles)``.  One ``CaseStatusTransition`` row is created
for every role listed.
"""

from core.constants import (
    ADMIN,
    COURT_OFFICIAL,
    EVIDENCE_MANAGER,
    FORENSIC_ANALYST,
    INVESTIGATOR,
    LEGAL_PROFESSIONAL,
)

OPEN = "open"
UNDER_INVESTIGATION = "under_investigation"
EVIDENCE_REVIEW = "evidence_review"
PENDING_LEGAL_REVIEW = "pending_legal_review"
IN_COURT = "in_court"
CLOSED = "closed"
ARCHIVED = "archived"

DEFAULT_STATUS = OPEN

CASE_STATUSES: list[tuple[str, str, str, str, int, bool]] = [
    (OPEN, "Open", "Case registered, not yet under investigation.", "#3B82F6", 1, False),
    (UNDER_INVESTIGATION, "Under Investigation", "Evidence is being collected.", "#F59E0B", 2, False),
    (EVIDENCE_REVIEW, "Evidence Review", "Forensic review of collected evidence.", "#8B5CF6", 3, False),
    (PENDING_LEGAL_REVIEW, "Pending Legal Review", "Awaiting prosecution review.", "#EC4899", 4, False),
    (IN_COURT, "In Court", "Case is before the court.", "#EF4444", 5, False),
    (CLOSED, "Closed", "Case concluded.", "#10B981", 6, True),
    (ARCHIVED, "Archived", "Closed case moved to long-term storage.", "#6B7280", 7, True),
]

CASE_TRANSITIONS: list[tuple[str, str, str, tuple[str, ...]]] = [
    (OPEN, UNDER_INVESTIGATION, "Start Investigation", (ADMIN, INVESTIGATOR, EVIDENCE_MANAGER)),
    (OPEN, CLOSED, "Dismiss Case", (ADMIN, COURT_OFFICIAL)),
    (UNDER_INVESTIGATION, EVIDENCE_REVIEW, "Submit for Evidence Review", (ADMIN, INVESTIGATOR, FORENSIC_ANALYST)),
    (EVIDENCE_REVIEW, UNDER_INVESTIGATION, "Return for Investigation", (ADMIN, FORENSIC_ANALYST, EVIDENCE_MANAGER)),
    (EVIDENCE_REVIEW, PENDING_LEGAL_REVIEW, "Forward to Prosecution", (ADMIN, INVESTIGATOR, EVIDENCE_MANAGER)),
    (PENDING_LEGAL_REVIEW, UNDER_INVESTIGATION, "Request Further Investigation", (ADMIN, LEGAL_PROFESSIONAL)),
    (PENDING_LEGAL_REVIEW, IN_COURT, "File in Court", (ADMIN, LEGAL_PROFESSIONAL)),
    (IN_COURT, CLOSED, "Close Case", (ADMIN, COURT_OFFICIAL)),
    (CLOSED, UNDER_INVESTIGATION, "Reopen Case", (ADMIN, COURT_OFFICIAL)),
    (CLOSED, ARCHIVED, "Archive Case", (ADMIN, EVIDENCE_MANAGER)),
]
