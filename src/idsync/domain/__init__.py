"""Source-independent core of the identity sync."""
