"""
Question List Merger - Reconciles a user's starred/done question lists

Each pid in the incoming list is linked to the user once (existing links are
left alone) and the reference question's counter is bumped on every merge,
whether or not the link already existed.
"""
import asyncio
import time
from typing import Dict, List, Sequence
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete

from db.models import Question, StarQuestion, DoneQuestion
from core.logging_config import logger

ADD = "add"
DELETE = "delete"

class QuestionList(BaseModel):
    """Describes one user -> question collection and the counter it feeds"""
    model_config = ConfigDict(frozen=True)

    name: str
    model: type
    counter: str
    time_field: str
    defaults: Dict[str, str] = {}

STAR_LIST = QuestionList(
    name="star",
    model=StarQuestion,
    counter="incorrect_count",
    time_field="stared_time",
    defaults={"folder": "wrong"},
)

DONE_LIST = QuestionList(
    name="done",
    model=DoneQuestion,
    counter="done_count",
    time_field="done_time",
)

class MergeResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    inserted: List[str] = []
    incremented: List[str] = []
    skipped: List[str] = []
    failed: Dict[str, Exception] = {}
    deleted: int = 0

class ListMergeError(Exception):
    """One or more pids failed while merging a question list"""

    def __init__(self, list_name: str, result: MergeResult):
        self.list_name = list_name
        self.result = result
        failed = ", ".join(f"{pid}: {err!r}" for pid, err in result.failed.items())
        super().__init__(f"{list_name} list merge failed for {len(result.failed)} pid(s): {failed}")

class QuestionListMerger:

    def __init__(self, question_list: QuestionList):
        self.question_list = question_list

    async def merge(
        self,
        db: AsyncSession,
        user_uuid: str,
        pids: Sequence[str],
        mode: str = ADD,
    ) -> MergeResult:
        """Add (or with ``mode="delete"`` remove) the given pids for a user"""
        if mode not in (ADD, DELETE):
            raise ValueError(f"Unknown merge mode: {mode}")

        if not pids:
            return MergeResult()

        # Duplicates inside one list count once: (user, pid) is unique in both
        # tables, so a repeated pid could only ever be linked once
        pids = list(dict.fromkeys(pids))
        model = self.question_list.model

        result = await db.execute(
            select(model.pid).where(model.user == user_uuid, model.pid.in_(pids))
        )
        existing_pids = set(result.scalars().all())

        if mode == DELETE:
            deleted = await db.execute(
                delete(model).where(model.user == user_uuid, model.pid.in_(pids))
            )
            logger.info(f"Removed {deleted.rowcount} {self.question_list.name} questions for user {user_uuid}")
            return MergeResult(deleted=deleted.rowcount)

        new_pids = {pid for pid in pids if pid not in existing_pids}

        # AsyncSession can't run statements concurrently; the lock serializes
        # access while each pid still succeeds or fails on its own.
        session_lock = asyncio.Lock()
        outcomes = await asyncio.gather(
            *(
                self._merge_pid(db, session_lock, user_uuid, pid, pid in new_pids)
                for pid in pids
            ),
            return_exceptions=True,
        )

        merge_result = MergeResult()
        for pid, outcome in zip(pids, outcomes):
            if isinstance(outcome, Exception):
                merge_result.failed[pid] = outcome
            elif outcome is None:
                merge_result.skipped.append(pid)
            else:
                if outcome:
                    merge_result.inserted.append(pid)
                merge_result.incremented.append(pid)

        if merge_result.failed:
            raise ListMergeError(self.question_list.name, merge_result)

        logger.debug(
            f"{self.question_list.name} merge for user {user_uuid}: "
            f"{len(merge_result.inserted)} inserted, {len(merge_result.incremented)} counted, "
            f"{len(merge_result.skipped)} skipped"
        )
        return merge_result

    async def _merge_pid(self, db, session_lock, user_uuid, pid, is_new):
        """Returns None when the question is unknown, else whether a row was inserted"""
        async with session_lock:
            result = await db.execute(select(Question).where(Question.pid == pid))
            question = result.scalar_one_or_none()

            if not question:
                logger.warning(f"Question with pid {pid} not found, skipping")
                return None

            if is_new:
                row = self.question_list.model(
                    user=user_uuid,
                    pid=question.pid,
                    course=question.course,
                    subject=question.subject,
                    type=question.type,
                    **{self.question_list.time_field: int(time.time() * 1000)},
                    **self.question_list.defaults,
                )
                db.add(row)
                await db.flush()

            counter = getattr(Question, self.question_list.counter)
            await db.execute(
                update(Question)
                .where(Question.pid == question.pid)
                .values({counter: counter + 1})
            )
            return is_new

star_merger = QuestionListMerger(STAR_LIST)
done_merger = QuestionListMerger(DONE_LIST)
