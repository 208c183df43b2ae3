"""Pure derivations over the conversation event log."""
