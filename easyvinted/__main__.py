from easyvinted.worker.cli import run

run()
