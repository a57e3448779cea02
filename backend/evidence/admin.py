from django.contrib import admin

from .models import ComparisonReport, Evidence


@admin.register(Evidence)
class EvidenceAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "case", "file_type", "status",
                    "blockchain_verified", "legal_hold", "created_at")
    list_filter = ("status", "blockchain_verified", "legal_hold", "file_type")
    search_fields = ("name", "description", "hash", "ipfs_cid", "blockchain_tx_hash")
    readonly_fields = ("hash", "ipfs_cid", "blockchain_tx_hash", "blockchain_block_number",
                       "gas_used", "blockchain_timestamp", "created_at")


@admin.register(ComparisonReport)
class ComparisonReportAdmin(admin.ModelAdmin):
    list_display = ("id", "report_type", "evidence_ids", "generated_by", "generated_at")
