"""GPG protection for secrets at rest."""
