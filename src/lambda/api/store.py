"""
Row store: query-builder style access to the DynamoDB single table.

Each collection lives under its own entity type:
    PK = "<ENTITY>#<id>", SK = "METADATA", entityType = "<ENTITY>", entitySk = PK
and is listed through the byEntity GSI. Every call returns
{"data": ..., "error": ..., "count": int}; store-side failures come back in
"error" instead of being raised.
"""
import json
import logging
import os
import uuid
from collections import namedtuple
from datetime import datetime, timezone

from botocore.exceptions import BotoCoreError, ClientError

from api.errors import NOT_FOUND, STORE_REJECTION, VALIDATION, storeError
from api.schemas import isKnownTable

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME", "")
ENTITY_INDEX = os.environ.get("ENTITY_INDEX", "byEntity")

METADATA_SK = "METADATA"
KEY_ATTRS = ("PK", "SK", "entityType", "entitySk")
BATCH_GET_LIMIT = 100

# alias: key the related row is attached under; table: related collection;
# column: field on this row holding the related id
Relation = namedtuple("Relation", ["alias", "table", "column"])


def _now():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def entityType(table):
    return table.upper()


def rowPk(table, row_id):
    return f"{entityType(table)}#{row_id}"


def rowKey(table, row_id):
    return {"PK": {"S": rowPk(table, row_id)}, "SK": {"S": METADATA_SK}}


def toAttr(value):
    """Convert a JSON-ready Python value to a DynamoDB attribute value."""
    if value is None:
        return {"NULL": True}
    if isinstance(value, bool):
        return {"BOOL": value}
    if isinstance(value, (int, float)):
        return {"N": str(value)}
    if isinstance(value, (list, tuple)):
        return {"L": [toAttr(v) for v in value]}
    if isinstance(value, dict):
        return {"M": {str(k): toAttr(v) for k, v in value.items()}}
    return {"S": str(value)}


def fromAttr(val):
    """Convert a DynamoDB attribute value to a plain Python value."""
    if "S" in val:
        return val["S"]
    if "N" in val:
        num_str = val["N"]
        return int(num_str) if "." not in num_str and "e" not in num_str.lower() else float(num_str)
    if "BOOL" in val:
        return val["BOOL"]
    if "NULL" in val:
        return None
    if "L" in val:
        return [fromAttr(v) for v in val["L"]]
    if "M" in val:
        return {k: fromAttr(v) for k, v in val["M"].items()}
    if "SS" in val:
        return list(val["SS"])
    return None


def itemToRow(item):
    """DynamoDB item -> row dict without the table-layout keys."""
    return {k: fromAttr(v) for k, v in item.items() if k not in KEY_ATTRS}


def _clientError(e):
    err = e.response.get("Error", {}) if hasattr(e, "response") else {}
    return storeError(STORE_REJECTION, err.get("Code", type(e).__name__), err.get("Message", str(e)))


def _isConditionFailure(e):
    return e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _sameValue(value, expected):
    """Equality that tolerates query-string values ("true", "3") against typed row values."""
    if value == expected:
        return True
    if value is None or expected is None:
        return False
    if isinstance(value, bool):
        return str(value).lower() == str(expected).lower()
    return str(value) == str(expected)


def _sortKey(value):
    """Total order over mixed column values: numbers, then strings, then maps and lists."""
    if isinstance(value, (int, float)):
        return (0, value, "")
    if isinstance(value, str):
        return (1, 0, value.lower())
    return (2, 0, json.dumps(value, sort_keys=True, default=str))


class RowStore:
    """Store handle passed explicitly to the action layer and handlers."""

    def __init__(self, client=None, table_name=None, index_name=None):
        self._client = client
        self.table_name = TABLE_NAME if table_name is None else table_name
        self.index_name = index_name or ENTITY_INDEX

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client("dynamodb")
        return self._client

    @staticmethod
    def _response(data=None, error=None, count=0):
        return {"data": data, "error": error, "count": count}

    def _check(self, table):
        """Return an error dict when the call cannot be issued, else None."""
        if not self.table_name:
            return storeError(STORE_REJECTION, "TableNotConfigured", "TABLE_NAME not set")
        if not isKnownTable(table):
            return storeError(VALIDATION, "UnknownTable", f"unknown table: {table!r}")
        return None

    def select(self, table, filters=None, order_by=None, ascending=True, embed=None, limit=None, offset=0):
        """List rows of table. count is the number of matches before limit/offset."""
        err = self._check(table)
        if err:
            return self._response(error=err)
        try:
            kwargs = {
                "TableName": self.table_name,
                "IndexName": self.index_name,
                "KeyConditionExpression": "entityType = :et",
                "ExpressionAttributeValues": {":et": {"S": entityType(table)}},
            }
            items = []
            while True:
                resp = self.client.query(**kwargs)
                items.extend(resp.get("Items", []))
                last_key = resp.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
            rows = [itemToRow(i) for i in items]
            for field, expected in (filters or {}).items():
                rows = [r for r in rows if _sameValue(r.get(field), expected)]
            if order_by:
                present = [r for r in rows if r.get(order_by) is not None]
                missing = [r for r in rows if r.get(order_by) is None]
                present.sort(key=lambda r: _sortKey(r[order_by]), reverse=not ascending)
                rows = present + missing
            total = len(rows)
            offset = max(int(offset or 0), 0)
            rows = rows[offset : offset + limit] if limit is not None else rows[offset:]
            for relation in embed or ():
                self._embed(rows, relation)
            return self._response(data=rows, count=total)
        except ClientError as e:
            return self._response(error=_clientError(e))
        except BotoCoreError as e:
            return self._response(error=storeError(STORE_REJECTION, "ConnectionError", e))

    def _embed(self, rows, relation):
        """Attach the related row (or None) under relation.alias. Batch-get related items."""
        ids = {r.get(relation.column) for r in rows if r.get(relation.column)}
        related = {}
        keys = [rowKey(relation.table, i) for i in sorted(ids)]
        for i in range(0, len(keys), BATCH_GET_LIMIT):
            request = {self.table_name: {"Keys": keys[i : i + BATCH_GET_LIMIT]}}
            while request:
                resp = self.client.batch_get_item(RequestItems=request)
                for item in resp.get("Responses", {}).get(self.table_name, []):
                    row = itemToRow(item)
                    related[row.get("id")] = row
                request = resp.get("UnprocessedKeys") or None
        for r in rows:
            r[relation.alias] = related.get(r.get(relation.column))

    def get(self, table, row_id):
        err = self._check(table)
        if err:
            return self._response(error=err)
        try:
            resp = self.client.get_item(TableName=self.table_name, Key=rowKey(table, row_id))
            if "Item" not in resp:
                return self._response(error=storeError(NOT_FOUND, "NotFound", f"{table} {row_id} not found"))
            return self._response(data=itemToRow(resp["Item"]), count=1)
        except ClientError as e:
            return self._response(error=_clientError(e))
        except BotoCoreError as e:
            return self._response(error=storeError(STORE_REJECTION, "ConnectionError", e))

    def insert(self, table, payload):
        """Insert one row. id is generated unless the payload carries one."""
        err = self._check(table)
        if err:
            return self._response(error=err)
        try:
            fields = dict(payload or {})
            row_id = str(fields.pop("id", None) or uuid.uuid4())
            now = _now()
            pk = rowPk(table, row_id)
            row = {"id": row_id, **fields, "created_at": now, "updated_at": now}
            item = {
                "PK": {"S": pk},
                "SK": {"S": METADATA_SK},
                "entityType": {"S": entityType(table)},
                "entitySk": {"S": pk},
            }
            item.update({k: toAttr(v) for k, v in row.items()})
            self.client.put_item(
                TableName=self.table_name,
                Item=item,
                ConditionExpression="attribute_not_exists(PK)",
            )
            return self._response(data=row, count=1)
        except ClientError as e:
            return self._response(error=_clientError(e))
        except BotoCoreError as e:
            return self._response(error=storeError(STORE_REJECTION, "ConnectionError", e))

    def _updateExpression(self, fields, now, upsert=False):
        sets = ["#updated_at = :updated_at"]
        names = {"#updated_at": "updated_at"}
        values = {":updated_at": {"S": now}}
        for i, (field, value) in enumerate(fields.items()):
            sets.append(f"#f{i} = :v{i}")
            names[f"#f{i}"] = field
            values[f":v{i}"] = toAttr(value)
        if upsert:
            sets.append("#created_at = if_not_exists(#created_at, :updated_at)")
            names["#created_at"] = "created_at"
        return "SET " + ", ".join(sets), names, values

    def update(self, table, row_id, payload):
        """Update fields of an existing row. A missing row gives count=0 and no error; nothing is created."""
        err = self._check(table)
        if err:
            return self._response(error=err)
        try:
            fields = {k: v for k, v in (payload or {}).items() if k != "id"}
            expr, names, values = self._updateExpression(fields, _now())
            resp = self.client.update_item(
                TableName=self.table_name,
                Key=rowKey(table, row_id),
                UpdateExpression=expr,
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
            return self._response(data=itemToRow(resp.get("Attributes", {})), count=1)
        except ClientError as e:
            if _isConditionFailure(e):
                return self._response(data=None, count=0)
            return self._response(error=_clientError(e))
        except BotoCoreError as e:
            return self._response(error=storeError(STORE_REJECTION, "ConnectionError", e))

    def upsert(self, table, row_id, payload):
        """Create or update the row with row_id."""
        err = self._check(table)
        if err:
            return self._response(error=err)
        try:
            pk = rowPk(table, row_id)
            fields = {k: v for k, v in (payload or {}).items() if k != "id"}
            fields.update({"id": str(row_id), "entityType": entityType(table), "entitySk": pk})
            expr, names, values = self._updateExpression(fields, _now(), upsert=True)
            resp = self.client.update_item(
                TableName=self.table_name,
                Key=rowKey(table, row_id),
                UpdateExpression=expr,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
            return self._response(data=itemToRow(resp.get("Attributes", {})), count=1)
        except ClientError as e:
            return self._response(error=_clientError(e))
        except BotoCoreError as e:
            return self._response(error=storeError(STORE_REJECTION, "ConnectionError", e))

    def delete(self, table, row_id):
        """Delete the row with row_id. count is 0 when there was nothing to delete."""
        err = self._check(table)
        if err:
            return self._response(error=err)
        try:
            resp = self.client.delete_item(
                TableName=self.table_name,
                Key=rowKey(table, row_id),
                ReturnValues="ALL_OLD",
            )
            old = resp.get("Attributes")
            if not old:
                return self._response(data=None, count=0)
            return self._response(data=itemToRow(old), count=1)
        except ClientError as e:
            return self._response(error=_clientError(e))
        except BotoCoreError as e:
            return self._response(error=storeError(STORE_REJECTION, "ConnectionError", e))
