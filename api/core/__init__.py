"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every feature uses: settings,
logging, DB wiring, the optional cache handle, the cross-origin policy
and the service container. Feature-specific SQL and business logic stay
in the corresponding feature package (e.g. `provisioning/`, `basket/`).
"""
