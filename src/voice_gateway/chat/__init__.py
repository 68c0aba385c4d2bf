"""Website chat assistant with conversation memory."""
