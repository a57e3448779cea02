"""
ledger.blockchain — Evidence anchoring on an EVM chain.

Wraps the evidence-storage contract through ``web3``.  The contract keeps
one record per anchored file hash::

    storeEvidence(fileHash, ipfsCid, caseId, metadata) -> evidenceId
    verifyHash(fileHash)        -> (exists, evidenceId)
    getEvidence(evidenceId)     -> EvidenceRecord
    getEvidenceByHash(fileHash) -> EvidenceRecord
    getEvidenceCount()          -> uint256

Configuration comes from ``settings.POLYGON_RPC_URL``, ``PRIVATE_KEY``,
``CONTRACT_ADDRESS``, ``CHAIN_ID`` and ``BLOCKCHAIN_CONFIRMATIONS``.  A
service instance is cheap to build; the node connection is opened on
first use.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from django.conf import settings
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from core.domain.activity import mask_identity

from .exceptions import LedgerError, LedgerNotConfigured

logger = logging.getLogger(__name__)

AMOY_CHAIN_ID = 80002
POLYGON_CHAIN_ID = 137

_EXPLORERS = {
    AMOY_CHAIN_ID: "https://amoy.polygonscan.com",
    POLYGON_CHAIN_ID: "https://polygonscan.com",
}
_DEFAULT_EXPLORER = "https://polygonscan.com"

# HTTPProvider surfaces connection failures and timeouts as
# ``requests`` exceptions, which derive from OSError.
_NODE_ERRORS = (ValueError, OSError, Web3Exception)

_NETWORK_NAMES = {
    AMOY_CHAIN_ID: "Polygon Amoy Testnet",
    POLYGON_CHAIN_ID: "Polygon Mainnet",
}

_RECORD_OUTPUTS = [
    {"name": "fileHash", "type": "string"},
    {"name": "ipfsCid", "type": "string"},
    {"name": "caseId", "type": "string"},
    {"name": "metadata", "type": "string"},
    {"name": "uploadedBy", "type": "address"},
    {"name": "timestamp", "type": "uint256"},
    {"name": "isSealed", "type": "bool"},
]

EVIDENCE_STORAGE_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "storeEvidence",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "fileHash", "type": "string"},
            {"name": "ipfsCid", "type": "string"},
            {"name": "caseId", "type": "string"},
            {"name": "metadata", "type": "string"},
        ],
        "outputs": [{"name": "evidenceId", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "verifyHash",
        "stateMutability": "view",
        "inputs": [{"name": "fileHash", "type": "string"}],
        "outputs": [
            {"name": "exists", "type": "bool"},
            {"name": "evidenceId", "type": "uint256"},
        ],
    },
    {
        "type": "function",
        "name": "getEvidence",
        "stateMutability": "view",
        "inputs": [{"name": "evidenceId", "type": "uint256"}],
        "outputs": _RECORD_OUTPUTS,
    },
    {
        "type": "function",
        "name": "getEvidenceByHash",
        "stateMutability": "view",
        "inputs": [{"name": "fileHash", "type": "string"}],
        "outputs": _RECORD_OUTPUTS,
    },
    {
        "type": "function",
        "name": "getEvidenceCount",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": "EvidenceStored",
        "anonymous": False,
        "inputs": [
            {"name": "evidenceId", "type": "uint256", "indexed": True},
            {"name": "fileHash", "type": "string", "indexed": False},
            {"name": "uploadedBy", "type": "address", "indexed": True},
            {"name": "timestamp", "type": "uint256", "indexed": False},
        ],
    },
]


def explorer_base(chain_id: int | None = None) -> str:
    """Block explorer root for a chain id (defaults to ``settings.CHAIN_ID``)."""
    if chain_id is None:
        chain_id = settings.CHAIN_ID
    return _EXPLORERS.get(chain_id, _DEFAULT_EXPLORER)


def explorer_url(tx_hash: str | None, chain_id: int | None = None) -> str | None:
    """Explorer page of a transaction, or ``None`` when there is no hash."""
    if not tx_hash:
        return None
    return f"{explorer_base(chain_id)}/tx/{tx_hash}"


def address_explorer_url(address: str | None, chain_id: int | None = None) -> str | None:
    if not address:
        return None
    return f"{explorer_base(chain_id)}/address/{address}"


def network_name(chain_id: int | None) -> str:
    return _NETWORK_NAMES.get(chain_id, f"Chain {chain_id}")


def _record_to_dict(record: Any) -> dict[str, Any]:
    file_hash, ipfs_cid, case_id, metadata, uploaded_by, timestamp, is_sealed = record
    try:
        parsed_metadata = json.loads(metadata) if metadata else {}
    except (TypeError, ValueError):
        parsed_metadata = metadata
    return {
        "fileHash": file_hash,
        "ipfsCid": ipfs_cid or None,
        "caseId": case_id or None,
        "metadata": parsed_metadata,
        "uploadedBy": uploaded_by,
        "timestamp": int(timestamp),
        "isSealed": bool(is_sealed),
    }


class BlockchainService:
    """
    Thin adapter over the evidence-storage contract.

    Every public method raises ``LedgerNotConfigured`` when the chain is
    not configured and ``LedgerError`` when the node call fails.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        private_key: str | None = None,
        contract_address: str | None = None,
        chain_id: int | None = None,
        confirmations: int | None = None,
    ) -> None:
        self.rpc_url = rpc_url if rpc_url is not None else settings.POLYGON_RPC_URL
        self.private_key = private_key if private_key is not None else settings.PRIVATE_KEY
        self.contract_address = (
            contract_address if contract_address is not None else settings.CONTRACT_ADDRESS
        )
        self.chain_id = chain_id if chain_id is not None else settings.CHAIN_ID
        self.confirmations = (
            confirmations if confirmations is not None else settings.BLOCKCHAIN_CONFIRMATIONS
        )
        self.tx_timeout = settings.BLOCKCHAIN_TX_TIMEOUT
        self._w3: Web3 | None = None
        self._contract = None
        self._account = None

    # ── Connection ───────────────────────────────────────────────────

    @property
    def is_configured(self) -> bool:
        return bool(self.rpc_url and self.private_key and self.contract_address)

    def _connect(self) -> None:
        if self._contract is not None:
            return
        if not self.is_configured:
            raise LedgerNotConfigured()
        try:
            w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": 30}))
            self._account = w3.eth.account.from_key(self.private_key)
            self._contract = w3.eth.contract(
                address=Web3.to_checksum_address(self.contract_address),
                abi=EVIDENCE_STORAGE_ABI,
            )
            self._w3 = w3
        except _NODE_ERRORS as exc:
            logger.error("Blockchain initialisation failed: %s", exc)
            raise LedgerError(f"Blockchain initialization failed: {exc}") from exc

    @property
    def wallet_address(self) -> str | None:
        if not self.is_configured:
            return None
        self._connect()
        return self._account.address

    # ── Writes ───────────────────────────────────────────────────────

    def store_evidence(
        self,
        file_hash: str,
        ipfs_cid: str | None,
        case_id: Any,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Anchor a file hash on-chain and wait for confirmations.

        Parameters
        ----------
        file_hash : str
            SHA-256 hex digest of the raw evidence bytes.
        ipfs_cid : str | None
            CID of the pinned copy, if the IPFS upload succeeded.
        case_id : Any
            Case the evidence belongs to (stored as text).
        metadata : dict
            Serialised to JSON and stored alongside the hash.

        Returns
        -------
        dict
            ``tx_hash``, ``block_number``, ``gas_used``, ``from``, ``to``,
            ``status``.

        Raises
        ------
        LedgerNotConfigured
            Chain settings are missing.
        LedgerError
            The transaction could not be sent, reverted, or was not
            confirmed within ``BLOCKCHAIN_TX_TIMEOUT`` seconds.
        """
        self._connect()
        w3, account = self._w3, self._account
        try:
            tx = self._contract.functions.storeEvidence(
                file_hash,
                ipfs_cid or "",
                "" if case_id is None else str(case_id),
                json.dumps(metadata, default=str),
            ).build_transaction(
                {
                    "from": account.address,
                    "nonce": w3.eth.get_transaction_count(account.address),
                    "chainId": self.chain_id,
                }
            )
            signed = account.sign_transaction(tx)
            tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.tx_timeout)
            self._wait_for_confirmations(receipt["blockNumber"])
        except TimeExhausted as exc:
            logger.error("Evidence transaction was not mined in time: %s", exc)
            raise LedgerError("Blockchain transaction timed out") from exc
        except _NODE_ERRORS as exc:
            logger.error("storeEvidence failed: %s", exc)
            raise LedgerError(f"Blockchain storage failed: {exc}") from exc

        if receipt["status"] != 1:
            raise LedgerError("Blockchain transaction reverted")

        result = {
            "tx_hash": Web3.to_hex(receipt["transactionHash"]),
            "block_number": receipt["blockNumber"],
            "gas_used": str(receipt["gasUsed"]),
            "from": receipt.get("from"),
            "to": receipt.get("to"),
            "status": "success",
        }
        logger.info(
            "Evidence hash %s anchored in block %s by %s",
            file_hash[:16],
            result["block_number"],
            mask_identity(account.address),
        )
        return result

    def _wait_for_confirmations(self, block_number: int, poll_interval: float = 2.0) -> None:
        target = block_number + max(self.confirmations - 1, 0)
        deadline = time.monotonic() + self.tx_timeout
        while self._w3.eth.block_number < target:
            if time.monotonic() > deadline:
                raise TimeExhausted(
                    f"Block {block_number} did not reach {self.confirmations} confirmations"
                )
            time.sleep(poll_interval)

    # ── Reads ────────────────────────────────────────────────────────

    def verify_hash(self, file_hash: str) -> dict[str, Any]:
        """Return ``{"exists": bool, "evidenceId": str}`` for a file hash."""
        self._connect()
        try:
            exists, evidence_id = self._contract.functions.verifyHash(file_hash).call()
        except _NODE_ERRORS as exc:
            logger.error("verifyHash failed: %s", exc)
            raise LedgerError(f"Blockchain verification failed: {exc}") from exc
        return {"exists": bool(exists), "evidenceId": str(evidence_id)}

    def get_evidence_record(self, evidence_id: int) -> dict[str, Any]:
        self._connect()
        try:
            record = self._contract.functions.getEvidence(int(evidence_id)).call()
        except _NODE_ERRORS as exc:
            raise LedgerError(f"Failed to read on-chain evidence: {exc}") from exc
        return _record_to_dict(record)

    def get_evidence_by_hash(self, file_hash: str) -> dict[str, Any]:
        self._connect()
        try:
            record = self._contract.functions.getEvidenceByHash(file_hash).call()
        except _NODE_ERRORS as exc:
            raise LedgerError(f"Failed to read on-chain evidence: {exc}") from exc
        return _record_to_dict(record)

    def get_evidence_count(self) -> int:
        self._connect()
        try:
            return int(self._contract.functions.getEvidenceCount().call())
        except _NODE_ERRORS as exc:
            raise LedgerError(f"Failed to read evidence count: {exc}") from exc

    def get_transaction_summary(self, tx_hash: str) -> dict[str, Any]:
        """Receipt of an evidence transaction with its confirmation depth."""
        self._connect()
        try:
            receipt = self._w3.eth.get_transaction_receipt(tx_hash)
            current_block = self._w3.eth.block_number
        except _NODE_ERRORS as exc:
            raise LedgerError(f"Failed to read transaction receipt: {exc}") from exc
        return {
            "txHash": tx_hash,
            "blockNumber": receipt["blockNumber"],
            "gasUsed": str(receipt["gasUsed"]),
            "from": receipt.get("from"),
            "to": receipt.get("to"),
            "status": "success" if receipt["status"] == 1 else "failed",
            "confirmations": max(current_block - receipt["blockNumber"] + 1, 0),
            "explorerUrl": explorer_url(tx_hash, self.chain_id),
        }

    def get_block_number(self) -> int:
        self._connect()
        try:
            return self._w3.eth.block_number
        except _NODE_ERRORS as exc:
            raise LedgerError(f"Failed to read block number: {exc}") from exc

    def get_balance(self) -> str:
        """Signer balance in ether, as a decimal string."""
        self._connect()
        try:
            wei = self._w3.eth.get_balance(self._account.address)
        except _NODE_ERRORS as exc:
            raise LedgerError(f"Failed to read wallet balance: {exc}") from exc
        return str(Web3.from_wei(wei, "ether"))

    def estimate_gas(self, file_hash: str, ipfs_cid: str | None, case_id: Any, metadata: dict[str, Any]) -> int:
        """Gas ``storeEvidence`` would use for these arguments."""
        self._connect()
        try:
            return self._contract.functions.storeEvidence(
                file_hash,
                ipfs_cid or "",
                "" if case_id is None else str(case_id),
                json.dumps(metadata, default=str),
            ).estimate_gas({"from": self._account.address})
        except _NODE_ERRORS as exc:
            raise LedgerError(f"Gas estimation failed: {exc}") from exc

    def network_info(self) -> dict[str, Any]:
        """Connection summary; never raises."""
        info = {
            "configured": self.is_configured,
            "connected": False,
            "network": network_name(self.chain_id),
            "chainId": self.chain_id,
            "blockNumber": None,
            "contractAddress": self.contract_address or None,
            "walletAddress": None,
            "balance": None,
            "evidenceCount": None,
        }
        if not self.is_configured:
            return info
        try:
            info["blockNumber"] = self.get_block_number()
            info["connected"] = True
            info["walletAddress"] = self.wallet_address
            info["balance"] = self.get_balance()
            info["evidenceCount"] = self.get_evidence_count()
        except LedgerError as exc:
            logger.warning("Blockchain node unreachable: %s", exc)
        return info
