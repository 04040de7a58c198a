"""AgencyOS: client portal API for agency service requests."""
