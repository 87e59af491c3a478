"""
In-memory repository.

Records are deep-copied on the way in and out so callers can never mutate
stored state by holding a reference.
"""

import threading
from typing import Dict, List, Optional

from ..assets.models import Asset
from ..jobs.models import Job
from ..reporting.models import Report
from .errors import SaveError
from .repository import JobRepository


class InMemoryRepository(JobRepository):
    """Thread-safe dict-backed repository."""

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: Dict[str, Job] = {}
        self._assets: Dict[str, Asset] = {}
        self._reports: Dict[str, Report] = {}

    # Jobs

    def add_job(self, job: Job) -> None:
        with self._lock:
            if job.id in self._jobs:
                raise SaveError(f"Job with ID '{job.id}' already exists")
            self._jobs[job.id] = job.model_copy(deep=True)

    def save_job(self, job: Job) -> None:
        with self._lock:
            stored = self._jobs.get(job.id)
            copy = job.model_copy(deep=True)
            if stored is not None:
                copy.input_asset_ids = list(stored.input_asset_ids)
            self._jobs[job.id] = copy

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def list_jobs(self, project_id: Optional[str] = None) -> List[Job]:
        with self._lock:
            jobs = [
                j.model_copy(deep=True) for j in self._jobs.values()
                if project_id is None or j.project_id == project_id
            ]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs

    # Assets

    def add_asset(self, asset: Asset) -> None:
        with self._lock:
            if asset.id in self._assets:
                raise SaveError(f"Asset with ID '{asset.id}' already exists")
            self._assets[asset.id] = asset.model_copy(deep=True)

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        with self._lock:
            asset = self._assets.get(asset_id)
            return asset.model_copy(deep=True) if asset else None

    def list_assets(self, project_id: Optional[str] = None) -> List[Asset]:
        with self._lock:
            return [
                a.model_copy(deep=True) for a in self._assets.values()
                if project_id is None or a.project_id == project_id
            ]

    def list_derivatives(self, parent_id: str) -> List[Asset]:
        with self._lock:
            children = [
                a.model_copy(deep=True) for a in self._assets.values()
                if a.parent_id == parent_id
            ]
        children.sort(key=lambda a: a.created_at)
        return children

    # Reports

    def add_report(self, report: Report) -> None:
        with self._lock:
            if report.id in self._reports:
                raise SaveError(f"Report with ID '{report.id}' already exists")
            self._reports[report.id] = report

    def add_outputs(self, assets: List[Asset], report: Report) -> None:
        with self._lock:
            for asset in assets:
                if asset.id in self._assets:
                    raise SaveError(f"Asset with ID '{asset.id}' already exists")
            if report.id in self._reports:
                raise SaveError(f"Report with ID '{report.id}' already exists")
            for asset in assets:
                self._assets[asset.id] = asset.model_copy(deep=True)
            self._reports[report.id] = report

    def get_report(self, report_id: str) -> Optional[Report]:
        with self._lock:
            return self._reports.get(report_id)

    def get_report_for_job(self, job_id: str) -> Optional[Report]:
        with self._lock:
            for report in self._reports.values():
                if report.job_id == job_id:
                    return report
        return None
