"""
Ledger app Service Layer.

Read-only reporting over the blockchain and IPFS anchors: node status,
public configuration, and aggregate statistics computed from the
evidence table.

Architecture
------------
- ``LedgerStatusService`` — status, config, stats and transaction checks.
- ``LedgerEstimateService`` — gas estimate for anchoring a file.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from django.db.models import Q

from core.domain.exceptions import NotFound
from evidence.models import Evidence

from .blockchain import BlockchainService, address_explorer_url, explorer_base, explorer_url
from .ipfs import IPFSStorageService

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10


def _anchored() -> Any:
    return Evidence.objects.filter(blockchain_tx_hash__isnull=False).exclude(blockchain_tx_hash="")


class LedgerStatusService:

    @staticmethod
    def status() -> dict[str, Any]:
        return BlockchainService().network_info()

    @staticmethod
    def config() -> dict[str, Any]:
        chain = BlockchainService()
        ipfs = IPFSStorageService()
        return {
            "rpcConfigured": bool(chain.rpc_url),
            "contractAddress": chain.contract_address or None,
            "contractExplorerUrl": address_explorer_url(chain.contract_address, chain.chain_id),
            "chainId": chain.chain_id,
            "explorerUrl": explorer_base(chain.chain_id),
            "confirmations": chain.confirmations,
            "ipfsConfigured": ipfs.is_configured,
            "ipfsGateway": ipfs.gateway,
        }

    @staticmethod
    def stats() -> dict[str, Any]:
        """
        Aggregate on-chain statistics.

        ``totalOnChain`` counts evidence with ``blockchain_verified``;
        gas figures cover every row that recorded ``gas_used``.
        """
        recent = (
            _anchored()
            .order_by("-blockchain_timestamp", "-id")
            .values("id", "name", "blockchain_tx_hash", "blockchain_block_number",
                    "blockchain_timestamp", "gas_used")[:RECENT_LIMIT]
        )
        recent_transactions = [
            {
                "evidenceId": row["id"],
                "name": row["name"],
                "txHash": row["blockchain_tx_hash"],
                "blockNumber": row["blockchain_block_number"],
                "timestamp": row["blockchain_timestamp"],
                "gasUsed": row["gas_used"],
                "explorerUrl": explorer_url(row["blockchain_tx_hash"]),
            }
            for row in recent
        ]

        gas_values: list[int] = []
        for raw in Evidence.objects.filter(gas_used__isnull=False).exclude(gas_used="").values_list("gas_used", flat=True):
            try:
                gas_values.append(int(raw))
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric gas_used value %r", raw)

        network = BlockchainService().network_info()
        total_gas = sum(gas_values)
        return {
            "totalOnChain": Evidence.objects.filter(blockchain_verified=True).count(),
            "recentTransactions": recent_transactions,
            "gas": {
                "total": total_gas,
                "average": round(total_gas / len(gas_values)) if gas_values else 0,
                "count": len(gas_values),
            },
            "network": {
                "currentBlock": network["blockNumber"],
                "walletBalance": network["balance"],
            },
        }

    @staticmethod
    def ipfs_stats() -> dict[str, Any]:
        pinned = Evidence.objects.filter(Q(ipfs_cid__isnull=False) & ~Q(ipfs_cid=""))
        ipfs = IPFSStorageService()
        recent = pinned.order_by("-created_at", "-id").values("id", "name", "ipfs_cid", "file_size", "created_at")[:RECENT_LIMIT]
        total_bytes = sum(pinned.values_list("file_size", flat=True))
        return {
            "totalFilesOnIPFS": pinned.count(),
            "recentUploads": [
                {**row, "url": ipfs.gateway_url(row["ipfs_cid"])} for row in recent
            ],
            "storage": {
                "totalBytes": total_bytes,
                "totalMB": round(total_bytes / (1024 * 1024), 2),
            },
            "gateway": ipfs.gateway,
        }

    @staticmethod
    def verify_transaction(tx_hash: str) -> dict[str, Any]:
        """
        Cross-check a recorded transaction against the contract.

        Raises:
            NotFound:    No evidence row references ``tx_hash``.
            LedgerError: The node could not be queried.
        """
        evidence = Evidence.objects.filter(blockchain_tx_hash=tx_hash).first()
        if evidence is None:
            raise NotFound("Transaction not found in database")

        chain = BlockchainService()
        verification = chain.verify_hash(evidence.hash)
        record = chain.get_evidence_record(verification["evidenceId"]) if verification["exists"] else None
        return {
            "hash": tx_hash,
            "evidenceId": evidence.pk,
            "blockNumber": evidence.blockchain_block_number,
            "timestamp": evidence.blockchain_timestamp,
            "gasUsed": evidence.gas_used,
            "verified": verification["exists"],
            "onChainId": verification["evidenceId"],
            "onChainRecord": record,
            "explorerUrl": explorer_url(tx_hash, chain.chain_id),
        }


class LedgerEstimateService:

    # Balance (in ether) below which the signer is reported as unable to pay.
    MIN_BALANCE = Decimal("0.001")

    @classmethod
    def estimate_gas(cls, validated_data: dict[str, Any]) -> dict[str, Any]:
        """
        Estimate the gas of anchoring a file of the given size.

        The hash is a zero placeholder; only the argument sizes matter.

        Raises:
            LedgerNotConfigured, LedgerError
        """
        metadata = validated_data.get("metadata") or {
            "fileName": validated_data.get("file_name", "sample.pdf"),
            "fileSize": validated_data.get("file_size", 0),
        }
        chain = BlockchainService()
        gas = chain.estimate_gas("0" * 64, None, validated_data.get("case_id") or None, metadata)
        balance = chain.get_balance()
        return {
            "gas": gas,
            "walletBalance": balance,
            "sufficient": Decimal(balance) > cls.MIN_BALANCE,
        }
