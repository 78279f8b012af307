"""
Database provisioning run once at startup (migrations + seed data).

`pipeline.provision()` is the only entry point the app needs; the stage
modules are importable on their own for scripts and tests.
"""
