"""
Evidence app Service Layer.

This module is the **single source of truth** for all business logic
in the ``evidence`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``EvidenceUploadService``       — Hash, pin, anchor and record a new file.
- ``EvidenceQueryService``        — Listing and retrieval.
- ``EvidenceFileService``         — Watermarked download, ZIP export, download history.
- ``EvidenceVerificationService`` — Integrity checks, proofs, certificates.
- ``EvidenceComparisonService``   — Side-by-side comparison and saved reports.

Upload pipeline
---------------
1. SHA-256 of the raw bytes.
2. Pin on IPFS (best effort; failure becomes a warning).
3. Anchor the hash on-chain and wait for confirmations (best effort).
4. Insert the ``Evidence`` row (fatal on failure).
5. Record ``evidence_uploaded`` in the custody log.

Permission constants used here (from ``core.permissions_constants.EvidencePerms``):
  - VIEW_EVIDENCE          → every role
  - ADD_EVIDENCE           → every role except public viewer and auditor
  - CAN_DOWNLOAD_EVIDENCE  → every role except public viewer
  - CAN_EXPORT_EVIDENCE    → every role except public viewer
  - CAN_AUDIT_EVIDENCE     → admin, auditor
"""

from __future__ import annotations

import hashlib
import io
import json
import logging
import re
import zipfile
from typing import Any

from django.core.files.base import ContentFile
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from cases.models import Case
from core.constants import EVIDENCE_MAX_SIZE_MB, MAX_BULK_EXPORT, SHA256_HEX_RE
from core.domain.access import require_permission
from core.domain.activity import ActivityLogService, identity_of, mask_identity
from core.domain.exceptions import DomainError, NotFound
from core.models import ActivityLog
from core.permissions_constants import EvidencePerms, perm_string
from ledger.blockchain import BlockchainService, explorer_url, network_name
from ledger.exceptions import IPFSError, LedgerError
from ledger.ipfs import IPFSStorageService

from .models import ComparisonReport, Evidence
from .watermark import apply_watermark, watermark_text

logger = logging.getLogger(__name__)

CERTIFICATE_ISSUER = "Evidence Chain-of-Custody Verification Service"

VERIFICATION_HISTORY_DEFAULT = 100
VERIFICATION_HISTORY_MAX = 1000
COMPARE_MIN = 2
COMPARE_MAX = 4

_FILENAME_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]")

_AUDIT_DENIED = "Unauthorized: Admin or Auditor role required"


class UnsupportedFileType(DomainError):
    """Upload of a MIME type outside ``EVIDENCE_MAX_SIZE_MB``.  HTTP 400."""

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"File type {mime_type or 'unknown'} not allowed")
        self.extra = {"supportedTypes": sorted(EVIDENCE_MAX_SIZE_MB)}


def sha256_hex(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def normalize_hash(value: str) -> str:
    """Lowercase a SHA-256 hex digest and drop an optional ``0x`` prefix."""
    value = value.strip().lower()
    return value[2:] if value.startswith("0x") else value


def safe_filename(value: str, default: str = "evidence") -> str:
    cleaned = _FILENAME_UNSAFE_RE.sub("_", value.replace("\r", "").replace("\n", "").replace('"', ""))
    return cleaned[:100] or default


def _base_queryset() -> QuerySet[Evidence]:
    return (
        Evidence.objects
        .select_related("case", "submitted_by", "retention_policy")
        .prefetch_related("evidence_tags__tag")
    )


def _get_evidence(pk: Any) -> Evidence:
    try:
        return _base_queryset().get(pk=pk)
    except (Evidence.DoesNotExist, ValueError, TypeError):
        raise NotFound("Evidence not found")


def _resolve_user(reference: str) -> Q:
    reference = str(reference).strip()
    if reference.isdigit():
        return Q(submitted_by_id=int(reference))
    return Q(submitted_by__wallet_address__iexact=reference) | Q(submitted_by__email__iexact=reference)


# ═══════════════════════════════════════════════════════════════════
#  Upload
# ═══════════════════════════════════════════════════════════════════


class EvidenceUploadService:
    """Runs the five-step upload pipeline."""

    @staticmethod
    def validate_file(uploaded_file: Any) -> str:
        """
        Check the MIME type and size of an uploaded file.

        Returns the MIME type.

        Raises:
            DomainError: missing file, unsupported type, or oversize.
        """
        if uploaded_file is None:
            raise DomainError("No file uploaded")

        mime_type = (getattr(uploaded_file, "content_type", "") or "").lower()
        max_mb = EVIDENCE_MAX_SIZE_MB.get(mime_type)
        if max_mb is None:
            raise UnsupportedFileType(mime_type)
        if uploaded_file.size > max_mb * 1024 * 1024:
            raise DomainError(f"File too large. Maximum size for {mime_type} is {max_mb}MB")
        return mime_type

    @staticmethod
    def upload(uploaded_file: Any, validated_data: dict[str, Any], requesting_user: Any) -> dict[str, Any]:
        """
        Store a new evidence file.

        Parameters
        ----------
        uploaded_file : UploadedFile
            The multipart ``file`` part.
        validated_data : dict
            ``case_id``, ``name``, ``description``, ``location``,
            ``collection_date`` (all optional).
        requesting_user : User
            The uploader.

        Returns
        -------
        dict
            ``evidence`` (model instance), ``blockchain`` and ``ipfs``
            anchor summaries (or ``None``) and the list of ``warnings``.

        Raises
        ------
        PermissionDenied
            The caller's role may not upload evidence.
        DomainError
            Missing, unsupported or oversized file.
        NotFound
            ``caseId`` does not reference an existing case.
        """
        require_permission(
            requesting_user,
            perm_string("evidence", EvidencePerms.ADD_EVIDENCE),
            message="Your role is not allowed to upload evidence",
        )
        mime_type = EvidenceUploadService.validate_file(uploaded_file)

        case = None
        case_id = validated_data.get("case_id")
        if case_id is not None:
            case = Case.objects.filter(pk=case_id).first()
            if case is None:
                raise NotFound("Case not found")

        content = uploaded_file.read()
        file_name = validated_data.get("name") or uploaded_file.name
        identity = identity_of(requesting_user)

        # ── 1. Digest ───────────────────────────────────────────────
        file_hash = sha256_hex(content)
        warnings: list[dict[str, str]] = []

        # ── 2. IPFS pin ─────────────────────────────────────────────
        ipfs = IPFSStorageService()
        ipfs_result = None
        try:
            ipfs_result = ipfs.upload_file(
                content,
                file_name,
                {"caseId": case_id, "mimeType": mime_type, "uploadedBy": identity},
            )
        except IPFSError as exc:
            logger.warning("IPFS pin skipped for %s: %s", file_hash[:16], exc)
            warnings.append({"service": "IPFS", "error": str(exc)})

        cid = ipfs_result["cid"] if ipfs_result else None

        # ── 3. On-chain anchor ──────────────────────────────────────
        chain = BlockchainService()
        chain_result = None
        try:
            chain_result = chain.store_evidence(
                file_hash,
                cid,
                case_id,
                {
                    "fileName": file_name,
                    "fileSize": len(content),
                    "mimeType": mime_type,
                    "uploadedBy": identity,
                },
            )
        except LedgerError as exc:
            logger.warning("Blockchain anchor skipped for %s: %s", file_hash[:16], exc)
            warnings.append({"service": "Blockchain", "error": str(exc)})

        # ── 4. Database insert ──────────────────────────────────────
        with transaction.atomic():
            evidence = Evidence(
                case=case,
                name=file_name,
                description=validated_data.get("description", ""),
                location=validated_data.get("location", ""),
                collection_date=validated_data.get("collection_date"),
                file_type=mime_type,
                file_size=len(content),
                hash=file_hash,
                ipfs_cid=cid,
                submitted_by=requesting_user,
            )
            if chain_result:
                evidence.blockchain_tx_hash = chain_result["tx_hash"]
                evidence.blockchain_block_number = chain_result["block_number"]
                evidence.gas_used = chain_result["gas_used"]
                evidence.blockchain_verified = True
                evidence.blockchain_timestamp = timezone.now()
            evidence.file.save(safe_filename(uploaded_file.name), ContentFile(content), save=False)
            evidence.save()

        # ── 5. Custody log ──────────────────────────────────────────
        ActivityLogService.record(
            user=requesting_user,
            action="evidence_uploaded",
            details={
                "evidence_id": evidence.pk,
                "file_name": file_name,
                "ipfs_cid": cid,
                "tx_hash": evidence.blockchain_tx_hash,
                "errors": warnings,
            },
            metadata={"evidence_id": evidence.pk, "hash": file_hash},
        )
        logger.info(
            "Evidence #%s uploaded by %s (ipfs=%s, chain=%s)",
            evidence.pk,
            mask_identity(identity),
            bool(cid),
            bool(chain_result),
        )

        return {
            "evidence": evidence,
            "blockchain": {
                "txHash": chain_result["tx_hash"],
                "blockNumber": chain_result["block_number"],
                "gasUsed": chain_result["gas_used"],
                "explorerUrl": explorer_url(chain_result["tx_hash"], chain.chain_id),
            } if chain_result else None,
            "ipfs": {"cid": cid, "url": ipfs.gateway_url(cid)} if cid else None,
            "warnings": warnings,
        }


# ═══════════════════════════════════════════════════════════════════
#  Query
# ═══════════════════════════════════════════════════════════════════


class EvidenceQueryService:

    @staticmethod
    def list_evidence(requesting_user: Any, filters: dict[str, Any]) -> tuple[QuerySet[Evidence], int]:
        """Return ``(page, total)`` for ``GET /api/evidence/``."""
        require_permission(requesting_user, perm_string("evidence", EvidencePerms.VIEW_EVIDENCE))
        qs = _base_queryset()

        if filters.get("case_id") is not None:
            qs = qs.filter(case_id=filters["case_id"])
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("submitted_by"):
            qs = qs.filter(_resolve_user(filters["submitted_by"]))

        total = qs.count()
        offset = filters.get("offset", 0)
        limit = filters.get("limit", 50)
        return qs[offset:offset + limit], total

    @staticmethod
    def get(requesting_user: Any, pk: Any) -> Evidence:
        require_permission(requesting_user, perm_string("evidence", EvidencePerms.VIEW_EVIDENCE))
        return _get_evidence(pk)

    @staticmethod
    def by_case(requesting_user: Any, case_id: Any) -> QuerySet[Evidence]:
        """Evidence of one case in upload order."""
        require_permission(requesting_user, perm_string("evidence", EvidencePerms.VIEW_EVIDENCE))
        return _base_queryset().filter(case_id=case_id).order_by("created_at", "id")


# ═══════════════════════════════════════════════════════════════════
#  Files: download / export / history
# ═══════════════════════════════════════════════════════════════════


class EvidenceFileService:

    @staticmethod
    def read_bytes(evidence: Evidence) -> bytes:
        """
        Load the stored bytes of an evidence file.

        Falls back to the IPFS gateway when the local copy is missing.

        Raises:
            NotFound: neither a local copy nor a CID is available.
            IPFSError: the gateway fetch failed.
        """
        if evidence.file:
            try:
                with evidence.file.open("rb") as handle:
                    return handle.read()
            except (FileNotFoundError, OSError) as exc:
                logger.warning("Local copy of evidence #%s unavailable: %s", evidence.pk, exc)
        if evidence.ipfs_cid:
            return IPFSStorageService().get_file(evidence.ipfs_cid)
        raise NotFound("Evidence file not available")

    @staticmethod
    def _watermarked(evidence: Evidence, identity: str) -> tuple[bytes, bool]:
        content = EvidenceFileService.read_bytes(evidence)
        case_number = evidence.case.case_number if evidence.case else None
        text = watermark_text(identity, case_number, timezone.now())
        return apply_watermark(content, evidence.file_type, text)

    @staticmethod
    def download(pk: Any, requesting_user: Any) -> dict[str, Any]:
        """
        Produce a watermarked copy of one evidence file.

        Returns a dict with ``content``, ``filename``, ``content_type``,
        ``watermark_applied`` and ``downloaded_by`` (masked identity).
        """
        require_permission(
            requesting_user,
            perm_string("evidence", EvidencePerms.CAN_DOWNLOAD_EVIDENCE),
            message="Public viewers cannot download evidence",
        )
        evidence = _get_evidence(pk)
        identity = identity_of(requesting_user)
        content, applied = EvidenceFileService._watermarked(evidence, identity)

        ActivityLogService.record(
            user=requesting_user,
            action="evidence_download",
            details={
                "evidence_id": evidence.pk,
                "evidence_name": evidence.name,
                "file_type": evidence.file_type,
                "watermark_applied": applied,
            },
            metadata={"evidence_id": evidence.pk, "watermark_applied": applied},
        )
        logger.info("Evidence #%s downloaded by %s", evidence.pk, mask_identity(identity))

        return {
            "content": content,
            "filename": safe_filename(evidence.name),
            "content_type": evidence.file_type or "application/octet-stream",
            "watermark_applied": applied,
            "downloaded_by": mask_identity(identity),
        }

    @staticmethod
    def bulk_export(evidence_ids: list[int], requesting_user: Any) -> tuple[bytes, str, int]:
        """
        Bundle several evidence files into a ZIP archive.

        The archive holds ``export_metadata.json`` plus one watermarked
        file per evidence item named ``<id>_<name>``.

        Raises:
            DomainError: no ids, or more than ``MAX_BULK_EXPORT``.
            NotFound:    none of the ids exist.
        """
        require_permission(
            requesting_user,
            perm_string("evidence", EvidencePerms.CAN_EXPORT_EVIDENCE),
            message="Public viewers cannot export evidence",
        )
        if not evidence_ids:
            raise DomainError("Evidence IDs array is required")
        if len(evidence_ids) > MAX_BULK_EXPORT:
            raise DomainError(f"Maximum {MAX_BULK_EXPORT} files per bulk export")

        items = list(_base_queryset().filter(pk__in=evidence_ids).order_by("id"))
        if not items:
            raise NotFound("No evidence found with provided IDs")

        identity = identity_of(requesting_user)
        now = timezone.now()
        metadata = {
            "exported_at": now.isoformat(),
            "exported_by": identity,
            "count": len(items),
            "evidence": [
                {
                    "id": item.pk,
                    "name": item.name,
                    "case_number": item.case.case_number if item.case else None,
                    "file_type": item.file_type,
                    "hash": item.hash,
                    "submitted_by": identity_of(item.submitted_by),
                    "created_at": item.created_at.isoformat(),
                    "blockchain_tx_hash": item.blockchain_tx_hash,
                }
                for item in items
            ],
        }

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr("export_metadata.json", json.dumps(metadata, indent=2))
            for item in items:
                try:
                    content, _applied = EvidenceFileService._watermarked(item, identity)
                except (NotFound, IPFSError) as exc:
                    logger.warning("Skipping evidence #%s in export: %s", item.pk, exc)
                    continue
                archive.writestr(f"{item.pk}_{safe_filename(item.name)}", content)

        ActivityLogService.record(
            user=requesting_user,
            action="evidence_bulk_export",
            details={"evidence_ids": [item.pk for item in items], "total_files": len(items)},
            metadata={"evidence_ids": [item.pk for item in items]},
        )
        filename = f"evidence_export_{now:%Y-%m-%dT%H-%M-%S}.zip"
        logger.info("Exported %d evidence item(s) for %s", len(items), mask_identity(identity))
        return buffer.getvalue(), filename, len(items)

    @staticmethod
    def download_history(pk: Any, requesting_user: Any) -> QuerySet[ActivityLog]:
        require_permission(
            requesting_user,
            perm_string("evidence", EvidencePerms.CAN_AUDIT_EVIDENCE),
            message=_AUDIT_DENIED,
        )
        evidence = _get_evidence(pk)
        return (
            ActivityLog.objects
            .filter(action="evidence_download", metadata__evidence_id=evidence.pk)
            .order_by("-timestamp", "-id")
        )


# ═══════════════════════════════════════════════════════════════════
#  Verification
# ═══════════════════════════════════════════════════════════════════


class EvidenceVerificationService:

    @staticmethod
    def verify(pk: Any, requesting_user: Any) -> dict[str, Any]:
        """
        Re-check one evidence item against the chain and the IPFS copy.

        ``overallValid`` requires the on-chain record and, when the file
        was pinned, a matching hash of the IPFS copy.  Failures of either
        service are reported in ``errors`` and count as unverified.
        """
        require_permission(requesting_user, perm_string("evidence", EvidencePerms.VIEW_EVIDENCE))
        evidence = _get_evidence(pk)
        errors: list[dict[str, str]] = []

        blockchain_verified = False
        try:
            blockchain_verified = BlockchainService().verify_hash(evidence.hash)["exists"]
        except LedgerError as exc:
            errors.append({"service": "Blockchain", "error": str(exc)})

        ipfs_verified = False
        calculated_hash = None
        if evidence.ipfs_cid:
            try:
                calculated_hash = sha256_hex(IPFSStorageService().get_file(evidence.ipfs_cid))
                ipfs_verified = calculated_hash == evidence.hash
            except IPFSError as exc:
                errors.append({"service": "IPFS", "error": str(exc)})

        overall = blockchain_verified and (ipfs_verified or not evidence.ipfs_cid)
        result = {
            "evidenceId": evidence.pk,
            "blockchainVerified": blockchain_verified,
            "ipfsVerified": ipfs_verified,
            "overallValid": overall,
            "calculatedHash": calculated_hash,
            "storedHash": evidence.hash,
            "explorerUrl": explorer_url(evidence.blockchain_tx_hash),
            "errors": errors,
            "timestamp": timezone.now().isoformat(),
        }

        ActivityLogService.record(
            user=requesting_user,
            action="evidence_verification",
            details={"evidence_id": evidence.pk, "overall_valid": overall},
            metadata={"evidence_id": evidence.pk},
        )
        return result

    @staticmethod
    def blockchain_proof(pk: Any, requesting_user: Any) -> dict[str, Any]:
        """
        On-chain record and transaction receipt of an anchored item.

        Raises:
            NotFound:    unknown evidence, or it was never anchored.
            LedgerError: the node could not be queried (HTTP 502).
        """
        require_permission(requesting_user, perm_string("evidence", EvidencePerms.VIEW_EVIDENCE))
        evidence = _get_evidence(pk)
        if not evidence.blockchain_tx_hash:
            raise NotFound("No blockchain record for this evidence")

        chain = BlockchainService()
        on_chain = chain.get_evidence_by_hash(evidence.hash)
        transaction_summary = chain.get_transaction_summary(evidence.blockchain_tx_hash)
        return {
            "evidenceId": evidence.pk,
            "hash": evidence.hash,
            "ipfsCid": evidence.ipfs_cid,
            "onChain": on_chain,
            "transaction": transaction_summary,
            "hashMatches": on_chain.get("fileHash") == evidence.hash,
            "network": network_name(chain.chain_id),
            "verificationMethod": "SHA-256",
            "explorerUrl": transaction_summary["explorerUrl"],
            "chainOfCustody": {
                "created": evidence.created_at.isoformat(),
                "anchoredAt": evidence.blockchain_timestamp.isoformat() if evidence.blockchain_timestamp else None,
            },
        }

    @staticmethod
    def verify_integrity(calculated_hash: str, evidence_id: int | None, requesting_user: Any) -> dict[str, Any]:
        """
        Compare a client-computed hash with the recorded one.

        With ``evidence_id`` the hash is compared against that row;
        without it the hash itself is looked up.  Callable anonymously.
        """
        if not SHA256_HEX_RE.match(calculated_hash or ""):
            raise DomainError("calculatedHash must be a 64-character hex SHA-256 digest")
        normalized = normalize_hash(calculated_hash)

        if evidence_id is not None:
            evidence = Evidence.objects.select_related("case").filter(pk=evidence_id).first()
            verified = evidence is not None and evidence.hash == normalized
        else:
            evidence = Evidence.objects.select_related("case").filter(hash=normalized).order_by("id").first()
            verified = evidence is not None

        authenticated = getattr(requesting_user, "is_authenticated", False)
        ActivityLogService.record(
            user=requesting_user if authenticated else None,
            identity=None if authenticated else "public_verification",
            action="evidence_verification",
            details={
                "calculatedHash": normalized[:16] + "...",
                "verified": verified,
                "evidenceId": evidence_id,
            },
            metadata={"evidence_id": evidence.pk} if evidence else {},
        )

        return {
            "verified": verified,
            "calculatedHash": normalized,
            "storedHash": evidence.hash if evidence else None,
            "evidence": {
                "id": evidence.pk,
                "name": evidence.name,
                "hash": evidence.hash,
                "case_id": evidence.case_id,
                "created_at": evidence.created_at.isoformat(),
            } if evidence else None,
            "verificationUrl": f"/verify/{normalized}",
            "timestamp": timezone.now().isoformat(),
        }

    @staticmethod
    def certificate(evidence_id: int, calculated_hash: str, requesting_user: Any) -> tuple[str, str]:
        """Return ``(text, filename)`` of a plain-text verification certificate."""
        if not SHA256_HEX_RE.match(calculated_hash or ""):
            raise DomainError("calculatedHash must be a 64-character hex SHA-256 digest")
        evidence = _get_evidence(evidence_id)
        normalized = normalize_hash(calculated_hash)
        matches = normalized == evidence.hash
        now = timezone.now()
        issued_to = identity_of(requesting_user) or "public"

        lines = [
            "EVIDENCE VERIFICATION CERTIFICATE",
            "",
            f"Certificate ID: CERT-{int(now.timestamp() * 1000)}",
            f"Evidence ID: {evidence.pk}",
            f"Evidence Name: {safe_filename(evidence.name)}",
            f"Case: {evidence.case.case_number if evidence.case else 'N/A'}",
            f"Recorded Hash: {evidence.hash}",
            f"Calculated Hash: {normalized}",
            f"Verification Result: {'MATCH' if matches else 'MISMATCH'}",
            f"Blockchain Transaction: {evidence.blockchain_tx_hash or 'N/A'}",
            f"Verification Date: {now.isoformat()}",
            f"Requested By: {mask_identity(issued_to)}",
            f"Issued By: {CERTIFICATE_ISSUER}",
            "",
            "This certificate confirms the integrity verification of the above evidence file.",
            "",
        ]
        logger.info("Verification certificate issued for evidence #%s (match=%s)", evidence.pk, matches)
        return "\n".join(lines), f"certificate-{evidence.pk}.txt"

    @staticmethod
    def public_verify(file_hash: str) -> dict[str, Any]:
        """Public lookup of a hash; exposes only non-sensitive fields."""
        if not SHA256_HEX_RE.match(file_hash or ""):
            return {"verified": False, "evidence": None}
        evidence = (
            Evidence.objects
            .select_related("case", "submitted_by")
            .filter(hash=normalize_hash(file_hash))
            .order_by("id")
            .first()
        )
        if evidence is None:
            return {"verified": False, "evidence": None}
        return {
            "verified": True,
            "evidence": {
                "id": evidence.pk,
                "name": evidence.name,
                "case_number": evidence.case.case_number if evidence.case else None,
                "file_type": evidence.file_type,
                "created_at": evidence.created_at.isoformat(),
                "submitted_by": mask_identity(identity_of(evidence.submitted_by)) or "unknown",
                "blockchain_tx_hash": evidence.blockchain_tx_hash,
            },
        }

    @staticmethod
    def history(requesting_user: Any, raw_limit: Any) -> QuerySet[ActivityLog]:
        require_permission(
            requesting_user,
            perm_string("evidence", EvidencePerms.CAN_AUDIT_EVIDENCE),
            message=_AUDIT_DENIED,
        )
        try:
            limit = int(raw_limit)
        except (TypeError, ValueError):
            limit = VERIFICATION_HISTORY_DEFAULT
        if limit < 1:
            limit = VERIFICATION_HISTORY_DEFAULT
        limit = min(limit, VERIFICATION_HISTORY_MAX)
        return ActivityLog.objects.filter(action="evidence_verification").order_by("-timestamp", "-id")[:limit]


# ═══════════════════════════════════════════════════════════════════
#  Comparison
# ═══════════════════════════════════════════════════════════════════


def _parse_ids(raw: Any) -> list[int]:
    if isinstance(raw, str):
        raw = raw.split(",")
    ids: list[int] = []
    for value in raw or []:
        try:
            number = int(str(value).strip())
        except ValueError:
            continue
        if number > 0 and number not in ids:
            ids.append(number)
    return ids


class EvidenceComparisonService:

    @staticmethod
    def compare(requesting_user: Any, raw_ids: Any) -> list[Evidence]:
        """
        Load 2-4 evidence items for side-by-side comparison.

        Raises:
            DomainError: fewer than 2 or more than 4 numeric ids.
            NotFound:    none of them exist.
        """
        require_permission(
            requesting_user,
            perm_string("evidence", EvidencePerms.CAN_AUDIT_EVIDENCE),
            message=_AUDIT_DENIED,
        )
        if not raw_ids:
            raise DomainError("Evidence IDs are required")
        ids = _parse_ids(raw_ids)
        if len(ids) < COMPARE_MIN:
            raise DomainError("Please provide at least 2 valid numeric evidence IDs")
        if len(ids) > COMPARE_MAX:
            raise DomainError("Please provide 2-4 evidence IDs")

        items = list(_base_queryset().filter(pk__in=ids).order_by("id"))
        if not items:
            raise NotFound("No evidence found with provided IDs")
        return items

    @staticmethod
    def create_report(requesting_user: Any, raw_ids: Any, report_data: dict[str, Any]) -> ComparisonReport:
        require_permission(
            requesting_user,
            perm_string("evidence", EvidencePerms.CAN_AUDIT_EVIDENCE),
            message=_AUDIT_DENIED,
        )
        ids = _parse_ids(raw_ids)
        if len(ids) < COMPARE_MIN:
            raise DomainError("At least 2 valid numeric evidence IDs required")

        report = ComparisonReport.objects.create(
            evidence_ids=ids,
            report_data=report_data or {},
            generated_by=requesting_user,
            report_type="evidence_comparison",
        )
        ActivityLogService.record(
            user=requesting_user,
            action="evidence_comparison_report_generated",
            details={"report_id": report.pk, "evidence_ids": ids},
            metadata={"report_id": report.pk},
        )
        logger.info("Comparison report #%s over %s generated", report.pk, ids)
        return report
