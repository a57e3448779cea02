"""
Unit tests — blockchain helpers and the Pinata IPFS client.

HTTP traffic is served by ``httpx.MockTransport`` and the web3 node and
contract are mocks; no node or pinning service is contacted.
"""

from __future__ import annotations

import json
from unittest import mock

import httpx
import requests
from django.test import SimpleTestCase
from web3.exceptions import TimeExhausted

from ledger.blockchain import (
    BlockchainService,
    _record_to_dict,
    address_explorer_url,
    explorer_url,
    network_name,
)
from ledger.exceptions import IPFSError, LedgerError, LedgerNotConfigured
from ledger.ipfs import IPFSStorageService

_CID_V0 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
_CID_V1 = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"
_TX = "0x" + "ef" * 32

_REAL_CLIENT = httpx.Client


def _client_with(handler):
    def factory(**kwargs):
        return _REAL_CLIENT(transport=httpx.MockTransport(handler), **kwargs)
    return factory


class TestBlockchainHelpers(SimpleTestCase):

    def test_explorer_urls_follow_chain(self):
        self.assertEqual(explorer_url(_TX, 80002), f"https://amoy.polygonscan.com/tx/{_TX}")
        self.assertEqual(explorer_url(_TX, 137), f"https://polygonscan.com/tx/{_TX}")
        self.assertIsNone(explorer_url(None))
        self.assertIsNone(address_explorer_url(""))

    def test_network_names(self):
        self.assertEqual(network_name(80002), "Polygon Amoy Testnet")
        self.assertEqual(network_name(31337), "Chain 31337")

    def test_record_decodes_metadata(self):
        record = ("ab" * 32, "", "12", json.dumps({"fileName": "a.txt"}), "0x" + "1" * 40, 1700000000, False)

        result = _record_to_dict(record)

        self.assertEqual(result["metadata"], {"fileName": "a.txt"})
        self.assertIsNone(result["ipfsCid"])
        self.assertEqual(result["caseId"], "12")
        self.assertFalse(result["isSealed"])

    def test_unconfigured_service_reports_without_raising(self):
        chain = BlockchainService(rpc_url="", private_key="", contract_address="", chain_id=80002)

        info = chain.network_info()

        self.assertFalse(info["configured"])
        self.assertFalse(info["connected"])
        self.assertEqual(info["network"], "Polygon Amoy Testnet")
        self.assertIsNone(chain.wallet_address)

    def test_unconfigured_service_refuses_reads(self):
        chain = BlockchainService(rpc_url="", private_key="", contract_address="")

        with self.assertRaises(LedgerNotConfigured):
            chain.verify_hash("ab" * 32)


class TestIPFSStorageService(SimpleTestCase):

    def _service(self, **overrides):
        options = {
            "jwt": "test-jwt",
            "gateway": "https://gateway.example/ipfs",
            "api_url": "https://pinning.example/",
            "max_retries": 2,
        }
        options.update(overrides)
        return IPFSStorageService(**options)

    def test_upload_returns_cid(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"IpfsHash": _CID_V1, "PinSize": 5, "Timestamp": "2024-01-01"})

        with mock.patch("ledger.ipfs.httpx.Client", side_effect=_client_with(handler)):
            result = self._service().upload_file(b"hello", "hello.txt", {"caseId": 3, "skip": None})

        self.assertEqual(result["cid"], _CID_V1)
        self.assertFalse(result["is_duplicate"])
        self.assertEqual(seen["url"], "https://pinning.example/pinning/pinFileToIPFS")
        self.assertEqual(seen["auth"], "Bearer test-jwt")

    def test_upload_retries_then_fails(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, json={"error": "unavailable"})

        with mock.patch("ledger.ipfs.httpx.Client", side_effect=_client_with(handler)), \
                mock.patch("ledger.ipfs.time.sleep") as sleep:
            with self.assertRaises(IPFSError) as ctx:
                self._service().upload_file(b"hello", "hello.txt")

        self.assertEqual(len(calls), 2)
        sleep.assert_called_once_with(1)
        self.assertTrue(str(ctx.exception).startswith("IPFS upload failed after 2 attempts"))

    def test_upload_requires_configuration(self):
        with self.assertRaises(IPFSError) as ctx:
            self._service(jwt="").upload_file(b"hello", "hello.txt")

        self.assertEqual(str(ctx.exception), "IPFS service not configured. Set PINATA_JWT in .env")

    def test_gateway_fetch(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith(_CID_V0):
                return httpx.Response(200, content=b"stored bytes")
            return httpx.Response(404)

        with mock.patch("ledger.ipfs.httpx.Client", side_effect=_client_with(handler)):
            service = self._service()
            self.assertEqual(service.get_file(_CID_V0), b"stored bytes")
            with self.assertRaises(IPFSError):
                service.get_file(_CID_V1)

    def test_gateway_url_and_cid_format(self):
        service = self._service()

        self.assertEqual(service.gateway_url(_CID_V0), f"https://gateway.example/ipfs/{_CID_V0}")
        self.assertIsNone(service.gateway_url(None))
        self.assertTrue(IPFSStorageService.is_valid_cid(_CID_V0))
        self.assertTrue(IPFSStorageService.is_valid_cid(_CID_V1))
        self.assertFalse(IPFSStorageService.is_valid_cid("Qm123"))
        self.assertFalse(IPFSStorageService.is_valid_cid(None))

    def test_pin_status_and_listing(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path, dict(request.url.params)))
            if request.url.path == "/pinning/pinJobs":
                return httpx.Response(200, json={"count": 0, "rows": []})
            return httpx.Response(200, json={"count": 2, "rows": [{"ipfs_pin_hash": _CID_V0}, {"ipfs_pin_hash": _CID_V1}]})

        with mock.patch("ledger.ipfs.httpx.Client", side_effect=_client_with(handler)):
            service = self._service()
            status = service.pin_status(_CID_V0)
            pins = service.list_pins(limit=5, offset=10)

        self.assertEqual(status, {"count": 0, "rows": []})
        self.assertEqual(pins["count"], 2)
        self.assertEqual(seen[0], ("GET", "/pinning/pinJobs", {"ipfs_pin_hash": _CID_V0}))
        self.assertEqual(seen[1], ("GET", "/data/pinList", {"pageLimit": "5", "pageOffset": "10"}))

    def test_unpin(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(200, text="OK")

        with mock.patch("ledger.ipfs.httpx.Client", side_effect=_client_with(handler)):
            result = self._service().unpin(_CID_V1)

        self.assertEqual(result, {"success": True, "cid": _CID_V1})
        self.assertEqual((seen["method"], seen["path"]), ("DELETE", f"/pinning/unpin/{_CID_V1}"))

    def test_pinning_api_errors_are_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "bad key"})

        with mock.patch("ledger.ipfs.httpx.Client", side_effect=_client_with(handler)):
            service = self._service()
            with self.assertRaisesMessage(IPFSError, "Failed to unpin file"):
                service.unpin(_CID_V1)
            with self.assertRaisesMessage(IPFSError, "Failed to list pins"):
                service.list_pins()

    def test_pin_management_requires_configuration(self):
        with self.assertRaises(IPFSError):
            self._service(jwt="").pin_status(_CID_V0)


_SIGNER = "0x" + "33" * 20
_RECORD = ("ab" * 32, _CID_V1, "12", json.dumps({"fileName": "a.txt"}), _SIGNER, 1700000000, True)


def _connected_service(confirmations: int = 2) -> tuple[BlockchainService, mock.MagicMock, mock.MagicMock]:
    """A configured service whose node and contract are mocks."""
    chain = BlockchainService(
        rpc_url="http://node.test",
        private_key="0x" + "11" * 32,
        contract_address="0x" + "22" * 20,
        chain_id=80002,
        confirmations=confirmations,
    )
    w3 = mock.MagicMock()
    contract = mock.MagicMock()
    chain._w3 = w3
    chain._contract = contract
    chain._account = mock.MagicMock(address=_SIGNER)
    return chain, w3, contract


def _receipt(block: int = 100, status: int = 1) -> dict:
    return {
        "blockNumber": block,
        "status": status,
        "transactionHash": bytes.fromhex("ab" * 32),
        "gasUsed": 21000,
        "from": _SIGNER,
        "to": "0x" + "22" * 20,
    }


class TestBlockchainStore(SimpleTestCase):

    def test_store_waits_for_confirmations(self):
        chain, w3, contract = _connected_service(confirmations=2)
        w3.eth.get_transaction_count.return_value = 7
        w3.eth.wait_for_transaction_receipt.return_value = _receipt(block=100)
        block_number = mock.PropertyMock(side_effect=[100, 101])
        type(w3.eth).block_number = block_number

        with mock.patch("ledger.blockchain.time.sleep") as sleep:
            result = chain.store_evidence("ab" * 32, None, 12, {"fileName": "a.txt"})

        self.assertEqual(result["tx_hash"], "0x" + "ab" * 32)
        self.assertEqual(result["block_number"], 100)
        self.assertEqual(result["gas_used"], "21000")
        self.assertEqual(block_number.call_count, 2)
        sleep.assert_called_once_with(2.0)

        contract.functions.storeEvidence.assert_called_once_with(
            "ab" * 32, "", "12", json.dumps({"fileName": "a.txt"})
        )
        tx_params = contract.functions.storeEvidence.return_value.build_transaction.call_args.args[0]
        self.assertEqual(tx_params, {"from": _SIGNER, "nonce": 7, "chainId": 80002})

    def test_single_confirmation_does_not_poll(self):
        chain, w3, _contract = _connected_service(confirmations=1)
        w3.eth.wait_for_transaction_receipt.return_value = _receipt(block=50)
        type(w3.eth).block_number = mock.PropertyMock(return_value=50)

        with mock.patch("ledger.blockchain.time.sleep") as sleep:
            chain.store_evidence("ab" * 32, _CID_V1, None, {})

        sleep.assert_not_called()

    def test_reverted_transaction(self):
        chain, w3, _contract = _connected_service()
        w3.eth.wait_for_transaction_receipt.return_value = _receipt(block=100, status=0)
        type(w3.eth).block_number = mock.PropertyMock(return_value=105)

        with self.assertRaisesMessage(LedgerError, "Blockchain transaction reverted"):
            chain.store_evidence("ab" * 32, None, None, {})

    def test_unmined_transaction_times_out(self):
        chain, w3, _contract = _connected_service()
        w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("not mined")

        with self.assertRaisesMessage(LedgerError, "Blockchain transaction timed out"):
            chain.store_evidence("ab" * 32, None, None, {})

    def test_refused_connection_is_a_ledger_error(self):
        chain, w3, _contract = _connected_service()
        w3.eth.get_transaction_count.side_effect = requests.exceptions.ConnectionError("Connection refused")

        with self.assertRaises(LedgerError) as ctx:
            chain.store_evidence("ab" * 32, None, None, {})

        self.assertTrue(str(ctx.exception).startswith("Blockchain storage failed"))

    def test_read_timeouts_are_ledger_errors(self):
        chain, w3, contract = _connected_service()
        contract.functions.verifyHash.return_value.call.side_effect = requests.exceptions.ReadTimeout("slow node")

        with self.assertRaises(LedgerError):
            chain.verify_hash("ab" * 32)


class TestBlockchainReads(SimpleTestCase):

    def test_network_info_of_reachable_node(self):
        chain, w3, contract = _connected_service()
        type(w3.eth).block_number = mock.PropertyMock(return_value=4321)
        w3.eth.get_balance.return_value = 10**18
        contract.functions.getEvidenceCount.return_value.call.return_value = 5

        info = chain.network_info()

        self.assertTrue(info["connected"])
        self.assertEqual(info["blockNumber"], 4321)
        self.assertEqual(info["walletAddress"], _SIGNER)
        self.assertEqual(info["balance"], "1")
        self.assertEqual(info["evidenceCount"], 5)

    def test_network_info_of_unreachable_node(self):
        chain, w3, _contract = _connected_service()
        type(w3.eth).block_number = mock.PropertyMock(
            side_effect=requests.exceptions.ConnectionError("Connection refused")
        )

        info = chain.network_info()

        self.assertTrue(info["configured"])
        self.assertFalse(info["connected"])
        self.assertIsNone(info["blockNumber"])

    def test_evidence_record_and_count(self):
        chain, _w3, contract = _connected_service()
        contract.functions.getEvidence.return_value.call.return_value = _RECORD
        contract.functions.getEvidenceCount.return_value.call.return_value = 9

        record = chain.get_evidence_record("4")

        contract.functions.getEvidence.assert_called_once_with(4)
        self.assertEqual(record["ipfsCid"], _CID_V1)
        self.assertTrue(record["isSealed"])
        self.assertEqual(chain.get_evidence_count(), 9)

    def test_gas_estimate(self):
        chain, _w3, contract = _connected_service()
        contract.functions.storeEvidence.return_value.estimate_gas.return_value = 91000

        gas = chain.estimate_gas("0" * 64, None, None, {"fileSize": 10})

        self.assertEqual(gas, 91000)
        contract.functions.storeEvidence.return_value.estimate_gas.assert_called_once_with({"from": _SIGNER})
