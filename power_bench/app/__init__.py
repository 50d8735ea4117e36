from .runner import AppController, AppReport, ExperimentRunner, summarize_reports

__all__ = ["AppController", "AppReport", "ExperimentRunner", "summarize_reports"]
