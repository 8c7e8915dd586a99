"""Commodity back office package.

The API (``backoffice.main``) and the report worker
(``backoffice.jobs.worker_reports``) are separate entry points sharing the
models, repositories and report file naming defined here.
"""

__all__: list[str] = []
