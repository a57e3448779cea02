"""
Ledger app views.

Reporting on the blockchain and IPFS anchors, plus gas estimates.  All business
logic lives in ``ledger.services``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import GasEstimateSerializer
from .services import LedgerEstimateService, LedgerStatusService


class BlockchainStatusView(APIView):
    """GET /api/blockchain/status/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Blockchain connection status",
        responses={200: OpenApiResponse(description="configured, connected, network, chainId, blockNumber, contractAddress, walletAddress, balance, evidenceCount.")},
        tags=["Blockchain"],
    )
    def get(self, request: Request) -> Response:
        return Response({"success": True, "status": LedgerStatusService.status()})


class BlockchainConfigView(APIView):
    """GET /api/blockchain/config/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Public blockchain and IPFS configuration",
        responses={200: OpenApiResponse(description="Chain id, contract, explorer and gateway settings.")},
        tags=["Blockchain"],
    )
    def get(self, request: Request) -> Response:
        return Response({"success": True, "config": LedgerStatusService.config()})


class BlockchainStatsView(APIView):
    """GET /api/blockchain/stats/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="On-chain evidence statistics",
        responses={200: OpenApiResponse(description="totalOnChain, recentTransactions, gas usage, current block and wallet balance.")},
        tags=["Blockchain"],
    )
    def get(self, request: Request) -> Response:
        return Response({"success": True, "stats": LedgerStatusService.stats()})


class IPFSStatsView(APIView):
    """GET /api/blockchain/ipfs-stats/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="IPFS storage statistics",
        responses={200: OpenApiResponse(description="Pinned file count, recent uploads, total size.")},
        tags=["Blockchain"],
    )
    def get(self, request: Request) -> Response:
        return Response({"success": True, "stats": LedgerStatusService.ipfs_stats()})


class TransactionVerifyView(APIView):
    """GET /api/blockchain/transactions/{tx_hash}/verify/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Verify a recorded evidence transaction",
        responses={
            200: OpenApiResponse(description="Transaction record cross-checked against the contract."),
            404: OpenApiResponse(description="Transaction not found in database."),
            502: OpenApiResponse(description="Blockchain node unreachable."),
        },
        tags=["Blockchain"],
    )
    def get(self, request: Request, tx_hash: str) -> Response:
        return Response({"success": True, "transaction": LedgerStatusService.verify_transaction(tx_hash)})


class GasEstimateView(APIView):
    """POST /api/blockchain/estimate-gas/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Estimate the gas of anchoring a file",
        request=GasEstimateSerializer,
        responses={
            200: OpenApiResponse(description="gas, walletBalance, sufficient."),
            502: OpenApiResponse(description="Blockchain not configured or node unreachable."),
        },
        tags=["Blockchain"],
    )
    def post(self, request: Request) -> Response:
        serializer = GasEstimateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        estimate = LedgerEstimateService.estimate_gas(serializer.validated_data)
        return Response({"success": True, "estimate": estimate})
