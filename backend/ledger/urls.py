"""
Ledger app URL configuration.

URL prefix (registered in ``backend/urls.py``)::

    path('api/', include('ledger.urls'))

Endpoint summary
----------------
GET /api/blockchain/status/                        — node connection status.
GET /api/blockchain/config/                        — chain / IPFS configuration.
GET /api/blockchain/stats/                         — on-chain statistics.
GET /api/blockchain/ipfs-stats/                    — IPFS storage statistics.
GET /api/blockchain/transactions/{tx_hash}/verify/ — cross-check one transaction.
POST /api/blockchain/estimate-gas/                — gas estimate for anchoring a file.
"""

from django.urls import path

from . import views

urlpatterns = [
    path("blockchain/status/", views.BlockchainStatusView.as_view(), name="blockchain-status"),
    path("blockchain/config/", views.BlockchainConfigView.as_view(), name="blockchain-config"),
    path("blockchain/stats/", views.BlockchainStatsView.as_view(), name="blockchain-stats"),
    path("blockchain/ipfs-stats/", views.IPFSStatsView.as_view(), name="blockchain-ipfs-stats"),
    path(
        "blockchain/transactions/<str:tx_hash>/verify/",
        views.TransactionVerifyView.as_view(),
        name="blockchain-transaction-verify",
    ),
    path("blockchain/estimate-gas/", views.GasEstimateView.as_view(), name="blockchain-estimate-gas"),
]
