"""
Warehouse store interface and its BigQuery implementation.

The pipeline talks to the warehouse only through query/insert/update/delete
with named @parameters. SQL composed here and by callers sticks to plain
predicates and MAX()/COUNT() aggregates.
"""

from datetime import date, datetime

from google.cloud import bigquery

from .config import StoreClientConfig
from .errors import StoreWriteError


class WarehouseStore:
    """Narrow tabular store interface."""

    def table_ref(self, table: str) -> str:
        raise NotImplementedError

    def query(self, sql: str, params: dict | None = None) -> list[dict]:
        raise NotImplementedError

    def insert(self, table: str, rows: list[dict]):
        raise NotImplementedError

    def update(self, table: str, set_values: dict, where: str, params: dict | None = None):
        """UPDATE table SET col = @set_col, ... WHERE <where>."""
        if not set_values:
            return
        assignments = ", ".join(f"{column} = @set_{column}" for column in set_values)
        merged = {f"set_{column}": value for column, value in set_values.items()}
        merged.update(params or {})
        sql = f"UPDATE {self.table_ref(table)} SET {assignments} WHERE {where}"
        self.query(sql, merged)

    def delete(self, table: str, where: str, params: dict | None = None):
        """DELETE FROM table WHERE <where>."""
        self.query(f"DELETE FROM {self.table_ref(table)} WHERE {where}", params)


def _query_parameter(name: str, value) -> bigquery.ScalarQueryParameter:
    if isinstance(value, bool):
        type_ = "BOOL"
    elif isinstance(value, int):
        type_ = "INT64"
    elif isinstance(value, float):
        type_ = "FLOAT64"
    elif isinstance(value, datetime):
        type_ = "TIMESTAMP"
    elif isinstance(value, date):
        type_ = "DATE"
    else:
        type_ = "STRING"
        if value is not None and not isinstance(value, str):
            value = str(value)
    return bigquery.ScalarQueryParameter(name, type_, value)


def make_bigquery_client(config: StoreClientConfig) -> bigquery.Client:
    """Build a BigQuery client from explicit config."""
    if config.credentials_file:
        return bigquery.Client.from_service_account_json(
            config.credentials_file, project=config.project_id, location=config.location)
    return bigquery.Client(project=config.project_id, location=config.location)


class BigQueryStore(WarehouseStore):
    """WarehouseStore backed by google-cloud-bigquery."""

    def __init__(self, config: StoreClientConfig, client: bigquery.Client | None = None):
        self.config = config
        self.client = client or make_bigquery_client(config)

    def table_ref(self, table: str) -> str:
        return f"`{self.config.project_id}.{self.config.dataset}.{table}`"

    def query(self, sql: str, params: dict | None = None) -> list[dict]:
        job_config = bigquery.QueryJobConfig(query_parameters=[
            _query_parameter(name, value) for name, value in (params or {}).items()
        ])
        results = self.client.query(sql, job_config=job_config, location=self.config.location).result()
        return [dict(row.items()) for row in results]

    def insert(self, table: str, rows: list[dict]):
        """
        Append rows with a load job.

        Load jobs skip the streaming buffer, so rows written here can be
        updated or deleted right away by a reprocess or dedup run.
        """
        if not rows:
            return
        table_id = f"{self.config.project_id}.{self.config.dataset}.{table}"
        job_config = bigquery.LoadJobConfig(
            write_disposition=bigquery.WriteDisposition.WRITE_APPEND,
        )
        try:
            job = self.client.load_table_from_json(rows, table_id, job_config=job_config)
            job.result()
        except Exception as e:
            raise StoreWriteError(f"BigQuery load into {table} failed: {type(e).__name__}: {str(e)}") from e

        if job.errors:
            raise StoreWriteError(f"BigQuery insert errors: {job.errors}")
