"""Type aliases used throughout dropbox_store."""

from __future__ import annotations

from typing import Union

from dropbox_store._models import Directory
from dropbox_store._object import RemoteObject

DirEntry = Union[Directory, RemoteObject]
