"""
Data Acquisition Module.

Fetches Indian equity data from external APIs (RapidAPI Yahoo, yfinance,
Alpha Vantage) and merges it into one provenance-tagged analysis record.

Main Entry Points:
    - data_acquisition.orchestration.data_orchestrator.AnalysisOrchestrator
    - data_acquisition.orchestration.data_orchestrator.build_default_orchestrator

Import from the submodules directly; this package stays import-free because
utils.http_utils depends on the provider error types.
"""
