"""
Services layer - business logic over the repositories.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Services raise domain exceptions; routes map them to HTTP responses
- Civic credits change only through the credit ledger
"""
