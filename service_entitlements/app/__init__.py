"""
Entitlements Service package for the OTA Access Layer.

This package decides what a principal may do and where an organization
stands against its plan. It provides:

- app.main: API surface for right checks, plan usage and segments.
- app.rights: Right names, principals and the rights resolver.
- app.quota: Usage totals, plan ceilings and billing flags.
- app.segments: Lifecycle classification and segment reconciliation.

Guidelines:
- The service is stateless; every decision re-reads the store.
- Decisions fail closed: a failed lookup denies, it never raises.
- Keep evaluation deterministic and observable (metrics + logs).
"""
