"""Core configuration for the resume assistant application.

Notes:
    1. This file is intentionally empty as it is used to initialize the package.
    2. Settings live in `core.config`.

"""
