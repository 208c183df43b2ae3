"""Rendezvous: event-sourced candidacy broker with a credit escrow ledger."""
