"""RQ worker process entrypoint for deferred import jobs."""

from rq import Worker

from services.import_queue import IMPORT_QUEUE_NAME, get_redis_connection


def main():
    redis_conn = get_redis_connection()
    worker = Worker([IMPORT_QUEUE_NAME], connection=redis_conn)
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
