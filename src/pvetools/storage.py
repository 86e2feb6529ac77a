from typing import (
    Any,
    Dict,
    List,
    Optional
)
from urllib.parse import quote

from loguru import logger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field
)


class DatastoreFileCreateRequest(BaseModel):
    filename: str
    node_id: str
    storage_id: str
    size: str
    vm_id: int
    format: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        params = {
            'filename': self.filename,
            'size': self.size,
            'vmid': self.vm_id,
        }
        if self.format is not None:
            params['format'] = self.format
        return params


class DatastoreFile(BaseModel):
    """Volume attributes as reported by GET .../content/{volume}."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    path: Optional[str] = None
    file_size: Optional[int] = Field(default=None, alias='size')
    file_format: Optional[str] = Field(default=None, alias='format')
    space_used: Optional[int] = Field(default=None, alias='used')


class DatastoreFileSummary(BaseModel):
    """One entry of a storage content listing."""

    model_config = ConfigDict(extra='ignore')

    volid: str
    content: str = 'images'
    format: Optional[str] = None
    size: Optional[int] = None
    used: Optional[int] = None
    vmid: Optional[int] = None

    @property
    def name(self) -> str:
        return self.volid.split(':', 1)[-1]


class Storage:
    def __init__(self, node: 'Node', storage_id: str) -> None:
        self.node = node
        self.storage_id = storage_id

    def __repr__(self):
        return f'Storage(node="{self.node.name}", id="{self.storage_id}")'

    @property
    def client(self) -> 'PveClient':
        return self.node.client

    @property
    def path(self) -> str:
        return f'{self.node.path}/storage/{quote(self.storage_id, safe="")}'

    def _content_path(self, name: str) -> str:
        return f'{self.path}/content/{quote(name, safe="")}'

    def create_datastore_file(self, request: DatastoreFileCreateRequest) -> str:
        volid = self.client.request('POST', f'{self.path}/content',
                                    params=request.to_params())
        logger.info(f'Created {volid} on {self!r}')
        return volid

    def get_datastore_file(self, name: str) -> DatastoreFile:
        data = self.client.request('GET', self._content_path(name))
        return DatastoreFile.model_validate(data or {})

    def delete_datastore_file(self, name: str) -> None:
        upid = self.client.request('DELETE', self._content_path(name))
        if upid:
            self.client.wait_for_task(self.node.name, upid)
        logger.info(f'Deleted {name} from {self!r}')

    def list_datastore_files(
        self,
        vm_id: int = None
    ) -> List[DatastoreFileSummary]:
        params = {'content': 'images'}
        if vm_id is not None:
            params['vmid'] = vm_id
        data = self.client.request('GET', f'{self.path}/content',
                                   params=params)
        return [DatastoreFileSummary.model_validate(item)
                for item in data or []]
