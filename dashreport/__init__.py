"""Dashboard report generation.

``dashreport`` discovers report-capable dashboards exposed by a metadata
service, resolves each dashboard's template variables, and drives an external
report renderer through its create/poll/cancel job lifecycle before handing
the finished artefact to a delivery sink.

Subpackages
-----------
metadata
    Dashboard cache, variable extraction, and organisation/dashboard
    resolution against the metadata service.
render
    Report job client for the rendering service.
delivery
    Delivery port and adapters for finished artefacts.
reporting
    Orchestration of a complete reporting run.

"""

__version__ = "0.1.0"
