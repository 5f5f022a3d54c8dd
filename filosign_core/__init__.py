"""
FiloSign Core Package
=====================
Wallet-keyed document sharing between exactly two parties.

Provides:
- Hybrid encryption (AES-256-GCM document key, ECIES-wrapped per party)
- Cryptographic access control and decryption resolver
- Public key discovery from wallet signatures, with an expiring cache
- Pluggable storage (memory, SQLite, HTTP blob service)
- Send / receive / sign document workflow
"""
