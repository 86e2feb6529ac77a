import typing
from typing import (
    Any,
    Dict,
    NamedTuple,
    Optional
)

from loguru import logger
from pydantic import (
    BaseModel,
    Field
)

from pvetools.exception import (
    ApiError,
    MalformedIdentityError,
    ResourceDoesNotExistError,
    UpdateNotSupportedError
)
from pvetools.pve import PveClient
from pvetools.storage import DatastoreFileCreateRequest

DEFAULT_VM_ID = 999
DEFAULT_FORMAT = 'raw'

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB

_SIZE_UNITS = {'K': KIB, 'M': MIB, 'G': GIB}


def _computed(description: str) -> Any:
    return Field(default=None, description=description,
                 json_schema_extra={'computed': True})


def _force_new(description: str, **kwargs) -> Any:
    return Field(description=description,
                 json_schema_extra={'force_new': True}, **kwargs)


class DiskState(BaseModel):
    id: Optional[str] = _computed(
        'ID of the disk in the format <node>:<datastore>:vm-<vmid>-<name>.')
    suffix: str = _force_new('The name of the file to create.', min_length=1)
    name: Optional[str] = _computed('Generated disk name.')
    node_id: str = _force_new('The cluster node name.', min_length=1)
    storage_id: str = _force_new('The storage identifier.', min_length=1)
    size: str = _force_new(
        "Size in kilobyte (1024 bytes). Optional suffixes 'M' (megabyte, "
        "1024K) and 'G' (gigabyte, 1024M).",
        pattern=r'^\d+[KMG]?$')
    vm_id: int = _force_new('Specify owner VM.', default=DEFAULT_VM_ID)
    format: Optional[str] = _force_new('The disk image format.',
                                       default=DEFAULT_FORMAT)
    path: Optional[str] = _computed('Path of the disk on the node.')
    space_used: Optional[int] = _computed('Space used by the disk in bytes.')
    size_bytes: Optional[int] = _computed('Disk size in bytes')
    size_mb: Optional[int] = _computed('Disk size in megabytes')
    size_gb: Optional[int] = _computed('Disk size in gigabytes')


class FieldSchema(NamedTuple):
    type: str
    required: bool
    optional: bool
    computed: bool
    force_new: bool
    default: Any
    description: str


def _schema_type(annotation: Any) -> str:
    args = [arg for arg in typing.get_args(annotation)
            if arg is not type(None)]
    if annotation is int or args == [int]:
        return 'int'
    return 'string'


def disk_schema() -> Dict[str, FieldSchema]:
    schema = {}
    for field_name, info in DiskState.model_fields.items():
        extra = info.json_schema_extra or {}
        computed = extra.get('computed', False)
        required = info.is_required()
        schema[field_name] = FieldSchema(
            type=_schema_type(info.annotation),
            required=required,
            optional=not required and not computed,
            computed=computed,
            force_new=extra.get('force_new', False),
            default=None if required else info.default,
            description=info.description or ''
        )
    return schema


def generate_disk_name(vm_id: int, suffix: str) -> str:
    return f'vm-{vm_id}-{suffix}'


def parse_size(size: str) -> int:
    """Convert a size string such as "512", "64M" or "8G" to bytes.

    A bare number is a count of kilobytes.
    """
    unit = size[-1:].upper()
    if unit in _SIZE_UNITS:
        return int(size[:-1]) * _SIZE_UNITS[unit]
    return int(size) * KIB


def format_size(size_bytes: int) -> str:
    """Render a byte count in the coarsest unit that divides it exactly."""
    if size_bytes % GIB == 0:
        return f'{size_bytes // GIB}G'
    if size_bytes % MIB == 0:
        return f'{size_bytes // MIB}M'
    return str(size_bytes)


def parse_disk_id(disk_id: str) -> Dict[str, Any]:
    parts = disk_id.split(':', 2)
    if len(parts) != 3 or not all(parts):
        raise MalformedIdentityError(
            f'Invalid disk id "{disk_id}", expected '
            f'<node>:<storage>:vm-<vmid>-<suffix>')
    node_id, storage_id, name = parts

    name_parts = name.split('-', 2)
    vm_id = name_parts[1] if len(name_parts) == 3 else ''
    # ASCII digits only
    if (len(name_parts) != 3 or name_parts[0] != 'vm'
            or not (vm_id.isascii() and vm_id.isdigit()) or not name_parts[2]):
        raise MalformedIdentityError(
            f'Invalid disk name "{name}", expected vm-<vmid>-<suffix>')

    return {
        'node_id': node_id,
        'storage_id': storage_id,
        'name': name,
        'vm_id': int(vm_id),
        'suffix': name_parts[2],
    }


class DiskResource:
    """Lifecycle of a disk image file stored on a PVE datastore.

    Every call receives the attribute set to work on and the client to reach
    the node with; nothing is kept on the instance between calls.
    """

    def create(self, state: DiskState, client: PveClient) -> DiskState:
        state.name = generate_disk_name(state.vm_id, state.suffix)

        file_format = None
        if 'format' in state.model_fields_set:
            file_format = state.format

        request = DatastoreFileCreateRequest(
            filename=state.name,
            node_id=state.node_id,
            storage_id=state.storage_id,
            size=state.size,
            vm_id=state.vm_id,
            format=file_format
        )
        storage = client.node(state.node_id).storage(state.storage_id)
        volid = storage.create_datastore_file(request)

        state.id = f'{state.node_id}:{volid}'
        logger.info(f'Disk {state.id} created')
        return self.read(state, client)

    def read(self, state: DiskState, client: PveClient) -> DiskState:
        storage = client.node(state.node_id).storage(state.storage_id)
        try:
            disk = storage.get_datastore_file(state.name)
        except ResourceDoesNotExistError:
            logger.warning(f'Disk {state.name} no longer exists on '
                           f'{state.node_id}:{state.storage_id}')
            state.id = None
            return state

        if disk.file_size is not None:
            state.size_bytes = disk.file_size
            state.size_mb = disk.file_size // MIB
            state.size_gb = disk.file_size // GIB
        else:
            state.size_bytes = None
            state.size_mb = None
            state.size_gb = None
        if disk.file_format is not None:
            state.format = disk.file_format
        state.path = disk.path
        state.space_used = disk.space_used
        return state

    def update(self, state: DiskState, client: PveClient) -> DiskState:
        raise UpdateNotSupportedError('Cannot update a disk in-place')

    def delete(self, state: DiskState, client: PveClient) -> DiskState:
        storage = client.node(state.node_id).storage(state.storage_id)
        try:
            storage.delete_datastore_file(state.name)
        except ResourceDoesNotExistError:
            logger.warning(f'Disk {state.name} was already deleted')

        state.id = None
        return state

    def import_state(self, disk_id: str, client: PveClient) -> DiskState:
        fields = parse_disk_id(disk_id)

        storage = client.node(fields['node_id']).storage(fields['storage_id'])
        disk = storage.get_datastore_file(fields['name'])

        size_bytes = disk.file_size
        if size_bytes is None:
            raise ApiError(502, f'no size reported for {fields["name"]}')

        state = DiskState(
            id=disk_id,
            size=format_size(size_bytes),
            format=disk.file_format,
            path=disk.path,
            space_used=disk.space_used,
            size_bytes=size_bytes,
            size_mb=size_bytes // MIB,
            size_gb=size_bytes // GIB,
            **fields
        )
        logger.info(f'Disk {disk_id} imported')
        return state
