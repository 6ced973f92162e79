"""Run the REST API server: ``python -m mock_sql``."""

from mock_sql.adapters.inbound.rest_api import run_server

if __name__ == "__main__":
    run_server()
