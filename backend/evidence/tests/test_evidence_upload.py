"""
Integration tests — evidence upload pipeline and listing.

Endpoints under test:
    POST /api/evidence/upload/             (evidence-upload)
    GET  /api/evidence/                    (evidence-list)
    GET  /api/evidence/{id}/               (evidence-detail)
    GET  /api/evidence/case/{case_id}/     (evidence-by-case)

The IPFS and blockchain adapters are patched on ``evidence.services`` so
no network call is made.
"""

from __future__ import annotations

import hashlib
import json
import shutil
import tempfile
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role
from cases.services import CaseCreationService
from core.models import ActivityLog
from evidence.models import Evidence
from ledger.blockchain import BlockchainService
from ledger.exceptions import IPFSError, LedgerNotConfigured

User = get_user_model()

MEDIA_ROOT = tempfile.mkdtemp(prefix="evidence-upload-")

_CID = "Qm" + "a" * 44
_TX = "0x" + "ab" * 32


def _make_user(n: int, role_name: str) -> User:
    wallet = "0x" + f"{n:040x}"
    return User.objects.create_user(
        username=wallet,
        wallet_address=wallet,
        full_name=f"{role_name.title()} {n}",
        role=Role.objects.get(name=role_name),
    )


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class TestEvidenceUpload(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        cls.investigator = _make_user(101, "investigator")
        cls.viewer = _make_user(102, "public_viewer")
        cls.auditor = _make_user(103, "auditor")
        cls.case = CaseCreationService.create_case({"title": "Harbour theft"}, cls.investigator)

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.investigator)
        self.url = reverse("evidence-upload")

        ipfs_patch = mock.patch("evidence.services.IPFSStorageService")
        chain_patch = mock.patch("evidence.services.BlockchainService")
        self.ipfs = ipfs_patch.start().return_value
        self.chain = chain_patch.start().return_value
        self.addCleanup(ipfs_patch.stop)
        self.addCleanup(chain_patch.stop)

        self.ipfs.upload_file.side_effect = IPFSError("IPFS service not configured. Set PINATA_JWT in .env")
        self.chain.store_evidence.side_effect = LedgerNotConfigured()

    def _upload(self, content=b"witness statement", name="statement.txt", content_type="text/plain", **extra):
        payload = {"file": SimpleUploadedFile(name, content, content_type=content_type)}
        payload.update(extra)
        return self.client.post(self.url, payload, format="multipart")

    # ── Success paths ────────────────────────────────────────────────

    def test_upload_without_services_succeeds_with_warnings(self):
        resp = self._upload(caseId=self.case.pk)

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual([w["service"] for w in resp.data["warnings"]], ["IPFS", "Blockchain"])
        self.assertTrue(resp.data["message"].startswith("Evidence uploaded with warnings: IPFS: "))
        self.assertIsNone(resp.data["blockchain"])
        self.assertIsNone(resp.data["ipfs"])

        evidence = Evidence.objects.get(pk=resp.data["evidence"]["id"])
        self.assertEqual(evidence.hash, hashlib.sha256(b"witness statement").hexdigest())
        self.assertEqual(evidence.case_id, self.case.pk)
        self.assertIsNone(evidence.ipfs_cid)
        self.assertFalse(evidence.blockchain_verified)

        log = ActivityLog.objects.get(action="evidence_uploaded", user=self.investigator)
        self.assertEqual(len(json.loads(log.details)["errors"]), 2)
        self.assertEqual(log.metadata["evidence_id"], evidence.pk)

    def test_upload_records_anchors_when_services_answer(self):
        self.ipfs.upload_file.side_effect = None
        self.ipfs.upload_file.return_value = {"cid": _CID, "size": 17, "timestamp": "now", "is_duplicate": False}
        self.ipfs.gateway_url.return_value = f"https://gateway.example/ipfs/{_CID}"
        self.chain.store_evidence.side_effect = None
        self.chain.store_evidence.return_value = {"tx_hash": _TX, "block_number": 42, "gas_used": "51234"}
        self.chain.chain_id = 80002

        resp = self._upload(name="Lab Report.txt", description="chain of custody")

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(resp.data["message"], "Evidence uploaded successfully")
        self.assertEqual(resp.data["warnings"], [])
        self.assertEqual(resp.data["ipfs"]["cid"], _CID)
        self.assertEqual(resp.data["blockchain"]["txHash"], _TX)
        self.assertEqual(resp.data["blockchain"]["explorerUrl"], f"https://amoy.polygonscan.com/tx/{_TX}")

        evidence = Evidence.objects.get(pk=resp.data["evidence"]["id"])
        self.assertTrue(evidence.blockchain_verified)
        self.assertEqual(evidence.blockchain_block_number, 42)
        self.assertEqual(evidence.ipfs_cid, _CID)

        file_hash = self.chain.store_evidence.call_args.args[0]
        self.assertEqual(file_hash, evidence.hash)

    @override_settings(
        POLYGON_RPC_URL="http://127.0.0.1:9",
        PRIVATE_KEY="0x" + "11" * 32,
        CONTRACT_ADDRESS="0x" + "22" * 20,
    )
    def test_unreachable_node_becomes_a_warning(self):
        # Port 9 refuses connections; the real adapter talks to it.
        with mock.patch("evidence.services.BlockchainService", BlockchainService):
            resp = self._upload(name="refused.txt")

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        chain_warning = resp.data["warnings"][-1]
        self.assertEqual(chain_warning["service"], "Blockchain")
        self.assertTrue(chain_warning["error"].startswith("Blockchain storage failed"))
        evidence = Evidence.objects.get(pk=resp.data["evidence"]["id"])
        self.assertIsNone(evidence.blockchain_tx_hash)

    # ── Validation ───────────────────────────────────────────────────

    def test_unsupported_type_lists_supported_types(self):
        resp = self._upload(name="run.exe", content_type="application/x-msdownload")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["detail"], "File type application/x-msdownload not allowed")
        self.assertIn("application/pdf", resp.data["supportedTypes"])
        self.assertFalse(Evidence.objects.exists())

    def test_oversized_file_is_rejected(self):
        oversized = b"x" * (10 * 1024 * 1024 + 1)

        resp = self._upload(content=oversized)

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["detail"], "File too large. Maximum size for text/plain is 10MB")

    def test_missing_file_is_rejected(self):
        resp = self.client.post(self.url, {"name": "nothing"}, format="multipart")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["detail"], "No file uploaded")

    def test_unknown_case_is_not_found(self):
        resp = self._upload(caseId=987654)

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["detail"], "Case not found")

    def test_public_viewer_cannot_upload(self):
        self.client.force_authenticate(user=self.viewer)

        resp = self._upload()

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["detail"], "Your role is not allowed to upload evidence")

    def test_auditor_cannot_upload(self):
        self.client.force_authenticate(user=self.auditor)

        resp = self._upload()

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_upload_requires_authentication(self):
        self.client.force_authenticate(user=None)

        resp = self._upload()

        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class TestEvidenceListing(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        cls.investigator = _make_user(111, "investigator")
        cls.viewer = _make_user(112, "public_viewer")
        cls.case = CaseCreationService.create_case({"title": "Listing case"}, cls.investigator)
        cls.other_case = CaseCreationService.create_case({"title": "Other case"}, cls.investigator)
        cls.items = [
            Evidence.objects.create(
                case=cls.case if n < 3 else cls.other_case,
                name=f"item-{n}.txt",
                file_type="text/plain",
                file_size=10,
                hash=hashlib.sha256(f"item-{n}".encode()).hexdigest(),
                submitted_by=cls.investigator,
            )
            for n in range(4)
        ]

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.viewer)

    def test_list_paginates_with_total(self):
        resp = self.client.get(reverse("evidence-list"), {"limit": 2})

        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["total"], 4)
        self.assertEqual(resp.data["limit"], 2)
        self.assertEqual(len(resp.data["evidence"]), 2)

    def test_list_filters_by_case(self):
        resp = self.client.get(reverse("evidence-list"), {"case_id": self.other_case.pk})

        self.assertEqual(resp.data["total"], 1)
        self.assertEqual(resp.data["evidence"][0]["case_number"], self.other_case.case_number)

    def test_list_filters_by_submitter_wallet(self):
        resp = self.client.get(
            reverse("evidence-list"), {"submitted_by": self.investigator.wallet_address.upper().replace("0X", "0x")}
        )

        self.assertEqual(resp.data["total"], 4)

    def test_retrieve_single_item(self):
        item = self.items[0]

        resp = self.client.get(reverse("evidence-detail", kwargs={"pk": item.pk}))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["evidence"]["hash"], item.hash)
        self.assertEqual(resp.data["evidence"]["submitted_by"], self.investigator.identity)
        self.assertIsNone(resp.data["evidence"]["explorerUrl"])

    def test_retrieve_unknown_item(self):
        resp = self.client.get(reverse("evidence-detail", kwargs={"pk": 999999}))

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["detail"], "Evidence not found")

    def test_by_case_is_in_upload_order(self):
        resp = self.client.get(reverse("evidence-by-case", kwargs={"case_id": self.case.pk}))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in resp.data["evidence"]], [item.pk for item in self.items[:3]])
