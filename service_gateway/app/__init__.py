"""
API Gateway Service package for the OTA Access Layer.

The gateway fronts client requests for bundle downloads, enforcing:
- Authentication: bearer tokens checked with the identity provider
- Authorization: read right on the app via the Entitlements service
- Ownership: the bundle must resolve to its owning org before signing

Structure:
- app.main: FastAPI app, routes, and response mapping.
- app.adapters: Clients for the identity provider, Entitlements service,
  data store and URL signer.
- app.domain: The download link authorization flow.
"""
