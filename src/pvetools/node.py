from urllib.parse import quote

from pvetools.pve import PveClient
from pvetools.storage import Storage


class Node:
    def __init__(self, client: PveClient, name: str) -> None:
        self.client = client
        self.name = name

    def __repr__(self):
        return f'Node(name="{self.name}")'

    @property
    def path(self) -> str:
        return f'/nodes/{quote(self.name, safe="")}'

    def storage(self, storage_id: str) -> Storage:
        return Storage(self, storage_id)
