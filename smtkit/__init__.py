"""smtkit - service management toolkit."""
