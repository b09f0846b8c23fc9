"""
Services module.

Business logic shared by the API routes:
- Order status flow and labels
- Assignment revenue-share allocation
- Invoice numbering and totals
- Finance export (CSV, XML, JSON) and CSV import
- Audit trail and outbound webhooks
- PDF documents (CMR, invoice)
"""
