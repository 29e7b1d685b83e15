"""
Startup scanning of the configured directory roots.

This package is responsible for:
* Validating that every configured root exists and can be read.
* Walking each root into the set of listable directories.
* Freezing the result into the route table shared by all requests.
"""
