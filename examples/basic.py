import os
import sys
import time
import threading
import logging

import sqlalchemy

import lynkdb


LOG = logging.getLogger(__file__)
THREADS = 20


class SleepyThread(threading.Thread):
    def __init__(self, engine, key):
        super(SleepyThread, self).__init__()
        self._engine = engine
        self._key = key

    def run(self):
        LOG.debug('Starting')
        # Locks belong to a database connection, so every thread takes its own
        # connection and its own session. Sharing one connection would make
        # all threads the same lock owner.
        with self._engine.connect() as connection:
            session = lynkdb.get_session(self.name, connection)
            lock = session.create_lock(self._key)
            # The with block here will block until it acquires the lock, or
            # gives up after waiting 60 seconds. Once acquired the lock is held
            # until the block exits, there is no lease to expire.
            # If this process died while holding the lock, the database would
            # release it when the connection went away.
            with lock(wait_budget=60):
                LOG.debug('Acquired lock')
                time.sleep(1)
                LOG.debug('Releasing lock')
        LOG.debug('Ending')


def do_work_with_locks(engine, key):
    threads = [SleepyThread(engine, key) for _ in range(THREADS)]

    for t in threads:
        t.start()

    for t in threads:
        t.join()


def main():
    # Any MySQL, MariaDB or PostgreSQL URL works. PostgreSQL advisory locks
    # are keyed by integer so the key is picked to suit the dialect.
    url = os.environ.get('LYNKDB_URL')
    if not url:
        sys.exit('Set LYNKDB_URL to a MySQL or PostgreSQL database URL.')
    engine = sqlalchemy.create_engine(
        url,
        isolation_level='AUTOCOMMIT',
        pool_size=THREADS,
    )
    key = 'my lock'
    if engine.dialect.name == 'postgresql':
        key = 4242
    try:
        do_work_with_locks(engine, key)
    finally:
        engine.dispose()


def configure_logging():
    # Configure logging so we can see which thread is doing what.
    LOG.setLevel(logging.DEBUG)
    formatter = logging.Formatter('%(asctime)s - %(threadName)s - %(message)s')
    ch = logging.StreamHandler()
    ch.setFormatter(formatter)
    LOG.addHandler(ch)


if __name__ == '__main__':
    configure_logging()
    main()
