"""Club attendance package.

Card taps are stored as an append-only ledger of IN/OUT punches. Presence,
sessions and statistics are always derived from that ledger. The package is
organized by feature modules (attendance, sessions, stats, registration,
system, members) with thin Flask controllers over service/repository layers.
"""
