"""Scheduling and billing engine: conflict detection, booking lifecycle, chalan ledger."""
