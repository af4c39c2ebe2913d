"""Domain knowledge injected into every generation request."""
