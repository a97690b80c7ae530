"""Infrastructure layer — clients for the management site.

This layer depends on stdlib, third-party libs (httpx) and the domain
models it serializes.  It must never import from services, commands, or
output.  The service layer drives it through :class:`SiteClient`.
"""
