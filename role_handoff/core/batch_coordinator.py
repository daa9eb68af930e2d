"""
Batch coordinator fanning one operation template out over many tasks.
Following Single Responsibility Principle - handles batch scheduling only.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, TYPE_CHECKING

from .exceptions import WorkflowError, InfrastructureError
from .models import BatchItemResult, BatchResult
from .requests import WorkflowRequest, BatchSpec

if TYPE_CHECKING:
    from .workflow_engine import WorkflowEngine

logger = logging.getLogger(__name__)


class BatchCoordinator:
    """
    Runs the engine's single-task path once per task id.

    Each task commits independently: a failure never rolls back tasks that
    already succeeded. Sequential batches stop at the first failure unless
    ``continue_on_error`` is set; parallel batches always run every task.
    """

    def __init__(self, engine: 'WorkflowEngine', max_parallel: int = 4):
        self.engine = engine
        self.max_parallel = max(1, max_parallel)

    def run(self, template: WorkflowRequest, batch: Optional[BatchSpec] = None) -> BatchResult:
        """
        Apply ``template`` to every task id of ``batch``.

        Args:
            template: Request whose operation and payload are reused per task
            batch: Batch spec (defaults to ``template.batch``)

        Returns:
            BatchResult with results in task id order
        """
        batch = batch or template.batch
        if batch is None:
            raise ValueError("No batch specification given")

        requests = [template.for_task(task_id) for task_id in batch.task_ids]
        result = BatchResult(total=len(requests), continue_on_error=batch.continue_on_error)

        if batch.parallel_execution:
            result.results = self._run_parallel(requests)
        else:
            result.results = self._run_sequential(requests, batch.continue_on_error)

        logger.info(
            "Batch %s finished: %d/%d successful, %d failed",
            template.operation.value, result.successful, result.total, result.failed
        )
        return result

    def _run_sequential(self, requests: List[WorkflowRequest], continue_on_error: bool) -> List[BatchItemResult]:
        results: List[BatchItemResult] = []
        for request in requests:
            item = self._run_one(request)
            results.append(item)
            if not item.success and not continue_on_error:
                logger.info("Batch aborted at task %s: %s", request.task_id, item.error)
                break
        return results

    def _run_parallel(self, requests: List[WorkflowRequest]) -> List[BatchItemResult]:
        max_workers = min(len(requests), self.max_parallel)
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(self._run_one, request) for request in requests]
            return [future.result() for future in futures]

    def _run_one(self, request: WorkflowRequest) -> BatchItemResult:
        try:
            data = self.engine.apply(request)
            return BatchItemResult(task_id=request.task_id, success=True, data=data)
        except WorkflowError as e:
            return BatchItemResult(task_id=request.task_id, success=False, error=e)
        except Exception as e:
            logger.exception("Unexpected failure for task %s in batch", request.task_id)
            error = InfrastructureError(str(e), task_id=request.task_id, operation=request.operation.value)
            return BatchItemResult(task_id=request.task_id, success=False, error=error)
