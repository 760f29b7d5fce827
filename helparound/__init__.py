"""HelpAround authentication service."""
