"""
Repository interface for jobs, assets and reports.

The pipeline depends only on this interface. Implementations decide how
records are stored; they must honor two rules:
- save_job never rewrites a job's input_asset_ids once stored
- assets and reports are write-once
- add_outputs stores a job's outputs and report all or nothing
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..assets.models import Asset
from ..jobs.errors import JobNotFoundError
from ..jobs.models import Job
from ..reporting.models import Report


class JobRepository(ABC):
    """Storage for pipeline records."""

    # Jobs

    @abstractmethod
    def add_job(self, job: Job) -> None:
        """
        Store a new job.

        Raises:
            SaveError: If a job with the same id already exists
        """

    @abstractmethod
    def save_job(self, job: Job) -> None:
        """Update a stored job's mutable fields (state, timestamps, outcome)."""

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[Job]: ...

    @abstractmethod
    def list_jobs(self, project_id: Optional[str] = None) -> List[Job]:
        """List jobs, newest first, optionally for one project."""

    # Assets

    @abstractmethod
    def add_asset(self, asset: Asset) -> None: ...

    @abstractmethod
    def get_asset(self, asset_id: str) -> Optional[Asset]: ...

    @abstractmethod
    def list_assets(self, project_id: Optional[str] = None) -> List[Asset]: ...

    @abstractmethod
    def list_derivatives(self, parent_id: str) -> List[Asset]:
        """Assets whose parent_id is parent_id, oldest first."""

    # Reports

    @abstractmethod
    def add_report(self, report: Report) -> None: ...

    @abstractmethod
    def add_outputs(self, assets: List[Asset], report: Report) -> None:
        """
        Store a completed job's output assets and its report together.

        Either every record is stored or none is.

        Raises:
            SaveError: If any asset or the report already exists
        """

    @abstractmethod
    def get_report(self, report_id: str) -> Optional[Report]: ...

    @abstractmethod
    def get_report_for_job(self, job_id: str) -> Optional[Report]: ...

    # Convenience

    def get_job_or_raise(self, job_id: str) -> Job:
        """
        Retrieve a job by ID, raising an exception if not found.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def get_assets(self, asset_ids: List[str]) -> List[Optional[Asset]]:
        """Fetch several assets, preserving order. Missing ids yield None."""
        return [self.get_asset(asset_id) for asset_id in asset_ids]
