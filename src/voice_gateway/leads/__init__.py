"""Lead capture, storage and follow-up side effects."""
