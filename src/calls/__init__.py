"""Call lifecycle: pending-call registry, signaling state machine, dashboard commands."""
