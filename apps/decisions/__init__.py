"""Group decisions: participants, voting and consensus."""
