"""
Spotlight - coin rotation scheduling and balance ledger
"""
