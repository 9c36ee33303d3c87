"""Group-join helpers: welcome templates and gist-based join verification."""

from __future__ import annotations

import hashlib
import logging
import re
import sqlite3
import threading
import time
from collections.abc import Callable
from os import PathLike

log = logging.getLogger(__name__)

GIST_RAW = "https://gist.githubusercontent.com/{user}/{gist}/raw/{name}"
ANSWER_MARKER = "答案："
VALID_SECONDS = 600

_INTEGER = re.compile(r"[+-]?[0-9]+")

Fetch = Callable[[str], "bytes | str"]


class GistRejected(Exception):
    """A join request that failed gist verification; the message is the reason."""


def welcome_to_cq(
    template: str, user_id: int, nickname: str, group_id: int, group_name: str
) -> str:
    """Fill the placeholders of a welcome or farewell template with CQ codes.

    Supported placeholders: {at}, {nickname}, {avatar}, {uid}, {gid} and
    {groupname}; they are replaced one after another in that order.
    """
    uid = str(user_id)
    replacements = (
        ("{at}", f"[CQ:at,qq={uid}]"),
        ("{nickname}", nickname),
        ("{avatar}", f"[CQ:image,file=http://q4.qlogo.cn/g?b=qq&nk={uid}&s=640]"),
        ("{uid}", uid),
        ("{gid}", str(group_id)),
        ("{groupname}", group_name),
    )
    text = template
    for placeholder, value in replacements:
        text = text.replace(placeholder, value)
    return text


def parse_gist_answer(comment: str) -> tuple[str, str]:
    """Split the answer of a join request into (github user, gist hash).

    The answer follows "答案：" and has the form ``username/gisthash``.
    """
    start = comment.find(ANSWER_MARKER)
    answer = comment[start + len(ANSWER_MARKER) :] if start >= 0 else comment
    slash = answer.find("/")
    if slash <= 0:
        raise ValueError("格式错误!")
    return answer[:slash], answer[slash + 1 :]


def gist_url(username: str, gist_hash: str, group_id: int) -> str:
    """Raw URL of the gist file named after the md5 of the group number."""
    name = hashlib.md5(str(group_id).encode("ascii")).hexdigest()
    return GIST_RAW.format(user=username, gist=gist_hash, name=name)


def check_gist_timestamp(body: str, now: float) -> bool:
    """Whether the unix timestamp in ``body`` lies within ten minutes of ``now``.

    Raises ValueError when ``body`` is not an integer.
    """
    if not _INTEGER.fullmatch(body):
        raise ValueError("时间戳格式错误: " + body)
    return abs(int(now) - int(body)) < VALID_SECONDS


class GistVerifier:
    """Checks join requests against gists and remembers accepted github users."""

    def __init__(self, db_path: str | PathLike[str], fetch: Fetch) -> None:
        self._fetch = fetch
        self._lock = threading.Lock()
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        with self._lock:
            self._db.execute("CREATE TABLE IF NOT EXISTS member (qq INTEGER, ghun TEXT)")
            self._db.commit()

    def __enter__(self) -> GistVerifier:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def check(self, qq: int, group_id: int, username: str, gist_hash: str) -> None:
        """Accept the request or raise GistRejected with the reason.

        On success the user is recorded so the same github account cannot
        join again.
        """
        with self._lock:
            row = self._db.execute(
                "SELECT 1 FROM member WHERE ghun = ? LIMIT 1", (username,)
            ).fetchone()
        if row is not None:
            raise GistRejected("该github用户已入群")
        url = gist_url(username, gist_hash, group_id)
        log.debug("visit url: %s", url)
        try:
            data = self._fetch(url)
        except Exception as exc:
            raise GistRejected("无法连接到gist: " + str(exc)) from exc
        body = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
        log.debug("get data: %s", body)
        try:
            fresh = check_gist_timestamp(body, time.time())
        except ValueError as exc:
            raise GistRejected(str(exc)) from exc
        if not fresh:
            raise GistRejected("时间戳超时")
        with self._lock:
            self._db.execute("INSERT INTO member (qq, ghun) VALUES (?, ?)", (qq, username))
            self._db.commit()

    def close(self) -> None:
        """Close the database."""
        with self._lock:
            self._db.close()