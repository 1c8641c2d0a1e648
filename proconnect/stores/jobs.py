"""Jobs store: postings and the viewer's saved list."""
import logging
from typing import List, Optional, Set

from proconnect.errors import ProConnectError, ValidationFailedError
from proconnect.schemas.job import Job
from proconnect.services.records import parse_records
from proconnect.services.supabase_client import SupabaseClient
from proconnect.stores.base import BaseStore, find_by_id, replace_by_id, upsert, without_id
from proconnect.stores.session import SessionStore

logger = logging.getLogger(__name__)

JOBS_TABLE = "jobs"
# One row per (job_id, user_id); the posting itself is shared by every viewer
SAVED_JOBS_TABLE = "saved_jobs"


class JobsStore(BaseStore):
    name = "jobs"
    state_fields = ("jobs", "saved_jobs")

    def __init__(self, remote: SupabaseClient, session: SessionStore):
        super().__init__(remote)
        self.session = session
        self.jobs: List[Job] = []
        self.saved_jobs: List[Job] = []

    def get_job(self, job_id: str) -> Optional[Job]:
        return find_by_id(self.jobs, job_id) or find_by_id(self.saved_jobs, job_id)

    async def _saved_job_ids(self, required: bool = False) -> Set[str]:
        if required:
            viewer_id = self.session.require_account().id
        else:
            viewer_id = self.session.account_id
            if viewer_id is None:
                return set()
        rows = await self.remote.query(SAVED_JOBS_TABLE, {"user_id": viewer_id})
        return {str(row.get("job_id")) for row in rows}

    async def _all_jobs(self) -> List[Job]:
        rows = await self.remote.query(JOBS_TABLE, order="posted_at.desc")
        jobs = parse_records(Job, rows)
        saved = await self._saved_job_ids()
        return [job.model_copy(update={"saved": job.id in saved}) for job in jobs]

    async def fetch_jobs(self) -> bool:
        return await self._load("fetching jobs", self._all_jobs, "jobs")

    async def fetch_saved_jobs(self) -> bool:
        async def load() -> List[Job]:
            saved = await self._saved_job_ids(required=True)
            if not saved:
                return []
            rows = await self.remote.query(JOBS_TABLE, order="posted_at.desc")
            return [
                job.model_copy(update={"saved": True})
                for job in parse_records(Job, rows) if job.id in saved
            ]

        return await self._load("fetching saved jobs", load, "saved_jobs")

    async def save_job(self, job_id: str, saved: bool) -> bool:
        """
        Set the viewer's saved flag in the main list and mirror it in the saved list.

        On failure both lists are reloaded from the backend.
        """
        try:
            viewer = self.session.require_account()
            job = self.get_job(job_id)
            if job is None:
                raise ValidationFailedError("Job not found")
        except ProConnectError as e:
            self._fail("saving the job", e)
            return False

        def apply() -> None:
            updated = job.model_copy(update={"saved": saved})
            saved_jobs = without_id(self.saved_jobs, job_id)
            if saved:
                saved_jobs = upsert(saved_jobs, updated)
            self._set(jobs=replace_by_id(self.jobs, updated), saved_jobs=saved_jobs)

        async def reload() -> None:
            await self.fetch_jobs()
            await self.fetch_saved_jobs()

        marker = {"job_id": job_id, "user_id": viewer.id}

        async def send() -> None:
            if saved:
                await self.remote.insert(SAVED_JOBS_TABLE, marker)
            else:
                # Removes every marker for the pair, duplicates included
                await self.remote.delete_where(SAVED_JOBS_TABLE, marker)

        return await self._mutate(
            "saving the job",
            send,
            apply=apply,
            compensate=reload,
        )

    async def search_jobs(self, query: str) -> bool:
        """Keep only postings whose title, company, description or location contains `query`."""
        if not query.strip():
            return await self.fetch_jobs()

        async def load() -> List[Job]:
            matches = [job for job in await self._all_jobs() if job.matches(query)]
            logger.info(f"Job search matched {len(matches)} posting(s)")
            return matches

        return await self._load("searching jobs", load, "jobs")
