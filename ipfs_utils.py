# -*- coding: utf-8 -*-
import os
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Sequence

from car_library import CarWriteResult, write_car
from cid_utils import ByteSource
from logger_setup import logger, get_log_prefix


def _write_task(future: Future, job_id: str, input_source: ByteSource, output_path, kwargs: dict):
    """Internal function to run one CAR write in a separate thread."""
    log_prefix = get_log_prefix(job_id, "WriteThread")
    if not future.set_running_or_notify_cancel():
        logger.info(f"{log_prefix} Write to {output_path} cancelled before start.")
        return
    try:
        result = write_car(input_source, output_path, job_id=job_id, **kwargs)
    except BaseException as e:
        logger.error(f"{log_prefix} Background CAR write to {output_path} failed: {e}")
        future.set_exception(e)
    else:
        future.set_result(result)

def write_car_async(
    input_source: ByteSource,
    output_path: str | os.PathLike,
    content_codec: int | None = None,
    car_cid_codec: int | None = None,
    header_encoding: str | None = None,
    job_id: str | None = None,
) -> Future:
    """
    Starts write_car in a background thread.

    Returns a Future resolving to the CarWriteResult, or raising whatever
    write_car raised.
    """
    job_id = job_id or uuid.uuid4().hex
    log_prefix = get_log_prefix(job_id, "WriteMgr")
    future: Future = Future()
    kwargs = {
        "content_codec": content_codec,
        "car_cid_codec": car_cid_codec,
        "header_encoding": header_encoding,
    }
    logger.info(f"{log_prefix} Starting async CAR write thread for {output_path}")
    write_thread = threading.Thread(
        target=_write_task,
        args=(future, job_id, input_source, output_path, kwargs),
        name=f"CarWrite-{job_id[:6]}",
        daemon=True # Allows main thread to exit even if a write is running
    )
    write_thread.start()
    return future

def write_cars(
    jobs: Iterable[Sequence],
    max_workers: int | None = None,
    content_codec: int | None = None,
    car_cid_codec: int | None = None,
    header_encoding: str | None = None,
) -> list[CarWriteResult]:
    """
    Writes independent (input, output) pairs in parallel.

    Results come back in job order. The first failure is raised once all
    submitted writes have finished.
    """
    jobs = [tuple(job) for job in jobs]
    if not jobs:
        return []
    output_paths = [os.fspath(output) for _, output in jobs]
    if len(set(output_paths)) != len(output_paths):
        raise ValueError("Each CAR write needs its own output path")

    log_prefix = get_log_prefix(component="WritePool")
    logger.info(f"{log_prefix} Writing {len(jobs)} CAR files")
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="CarPool") as pool:
        futures = [
            pool.submit(
                write_car,
                input_source,
                output_path,
                content_codec=content_codec,
                car_cid_codec=car_cid_codec,
                header_encoding=header_encoding,
                job_id=f"{index:06d}",
            )
            for index, (input_source, output_path) in enumerate(jobs)
        ]
    return [f.result() for f in futures]
