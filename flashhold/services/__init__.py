"""
Business services: stock ledger, holds, checkout, settlement and expiry.
"""
