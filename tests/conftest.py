import asyncio
import copy
import re
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from edara.core import db as db_module
from edara.core.rate_limit import limiter


# ============================
#   Base de datos en memoria
# ============================
# Doble de prueba del subconjunto de motor que usa la aplicación.

def _get(doc, path):
    cur = doc
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    return cur


def _cmp(op):
    def check(value, arg, _cond):
        if value is None or arg is None:
            return False
        return op(value, arg)
    return check


def _regex(value, arg, cond):
    flags = re.I if "i" in cond.get("$options", "") else 0
    return isinstance(value, str) and re.search(arg, value, flags) is not None


_OPS = {
    "$in": lambda v, a, c: v in a,
    "$ne": lambda v, a, c: v != a,
    "$gt": _cmp(lambda v, a: v > a),
    "$gte": _cmp(lambda v, a: v >= a),
    "$lt": _cmp(lambda v, a: v < a),
    "$lte": _cmp(lambda v, a: v <= a),
    "$exists": lambda v, a, c: (v is not None) == bool(a),
    "$regex": _regex,
    "$options": lambda v, a, c: True,
}


def _match(doc, filt):
    for key, cond in (filt or {}).items():
        if key == "$or":
            if not any(_match(doc, f) for f in cond):
                return False
            continue
        if key == "$and":
            if not all(_match(doc, f) for f in cond):
                return False
            continue
        value = _get(doc, key)
        if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
            if not all(_OPS[op](value, arg, cond) for op, arg in cond.items()):
                return False
        elif value != cond:
            return False
    return True


def _apply(doc, ops):
    for field, value in ops.get("$set", {}).items():
        doc[field] = copy.deepcopy(value)
    for field, value in ops.get("$inc", {}).items():
        doc[field] = doc.get(field, 0) + value
    for field, value in ops.get("$push", {}).items():
        doc.setdefault(field, []).append(copy.deepcopy(value))


def _sort_key(value):
    return (value is not None, value if value is not None else 0)


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        keys = key if isinstance(key, list) else [(key, direction)]
        for field, d in reversed(keys):
            self._docs.sort(key=lambda doc: _sort_key(_get(doc, field)), reverse=d < 0)
        return self

    def skip(self, n):
        self._docs = self._docs[n:]
        return self

    def limit(self, n):
        if n:
            self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        docs = self._docs if length is None else self._docs[:length]
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    def __init__(self):
        self.docs = []

    async def create_index(self, *args, **kwargs):
        return None

    async def insert_one(self, doc):
        doc.setdefault("_id", uuid.uuid4().hex)
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, filt=None, projection=None):
        for d in self.docs:
            if _match(d, filt):
                return copy.deepcopy(d)
        return None

    def find(self, filt=None, projection=None):
        return FakeCursor([d for d in self.docs if _match(d, filt)])

    async def count_documents(self, filt):
        return sum(1 for d in self.docs if _match(d, filt))

    async def update_one(self, filt, ops, upsert=False):
        for d in self.docs:
            if _match(d, filt):
                _apply(d, ops)
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def find_one_and_update(self, filt, ops, upsert=False, return_document=None):
        for d in self.docs:
            if _match(d, filt):
                _apply(d, ops)
                return copy.deepcopy(d)
        if not upsert:
            return None
        doc = {k: v for k, v in filt.items() if not k.startswith("$")}
        _apply(doc, ops)
        self.docs.append(doc)
        return copy.deepcopy(doc)

    async def delete_one(self, filt):
        for i, d in enumerate(self.docs):
            if _match(d, filt):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDB:
    def __init__(self):
        self._collections = {}

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self._collections.setdefault(name, FakeCollection())

    __getitem__ = __getattr__


@pytest.fixture
def fake_db(monkeypatch):
    fake = FakeDB()
    monkeypatch.setattr(db_module, "_db", fake)
    monkeypatch.setattr(limiter, "enabled", False)
    return fake


def run(coro):
    return asyncio.run(coro)


# ============================
#          Semillas
# ============================

def make_user(db, username, role="employee", email=None):
    user = {
        "id": uuid.uuid4().hex,
        "username": username,
        "full_name": username.title(),
        "email": email,
        "role": role,
        "password_hash": "x",
        "created_at": datetime.now(timezone.utc),
    }
    db.users.docs.append(copy.deepcopy(user))
    return user


def make_department(db, name="Purchasing"):
    dept = {"id": uuid.uuid4().hex, "name": name, "description": "", "created_at": datetime.now(timezone.utc)}
    db.departments.docs.append(copy.deepcopy(dept))
    return dept


def make_admin(db, dept, user, order, purchase=False, requires_cost_center=False):
    entry = {
        "id": uuid.uuid4().hex,
        "department_id": dept["id"],
        "user_id": user["id"],
        "admin_order": order,
        "is_purchase_admin": purchase,
        "requires_cost_center": requires_cost_center,
        "created_at": datetime.now(timezone.utc),
    }
    db.department_admins.docs.append(copy.deepcopy(entry))
    return entry


def make_cost_center(db, code="CC-01", name="Operations", active=True):
    cc = {"id": uuid.uuid4().hex, "cost_center_code": code, "cost_center_name": name,
          "is_active": active, "created_at": datetime.now(timezone.utc)}
    db.cost_centers.docs.append(copy.deepcopy(cc))
    return cc


def stored(db, collection, **filt):
    for d in getattr(db, collection).docs:
        if all(d.get(k) == v for k, v in filt.items()):
            return d
    return None
