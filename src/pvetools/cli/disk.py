import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typing_extensions import Annotated

from pvetools.cli.config import connect
from pvetools.cli.exception import handle_exceptions
from pvetools.disk import (
    DEFAULT_VM_ID,
    DiskResource,
    DiskState,
    format_size,
    parse_disk_id,
    parse_size
)

app = typer.Typer()
console = Console()

resource = DiskResource()


def print_disk(state: DiskState) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Attribute", style="dim")
    table.add_column("Value")
    for field_name, value in state.model_dump().items():
        table.add_row(field_name, escape('' if value is None else str(value)))
    console.print(table)


@app.command(name='create', help='Create a disk image file on a datastore')
@handle_exceptions
def create(
    node: Annotated[str, typer.Option(help="The cluster node name")],
    storage: Annotated[str, typer.Option(help="The storage identifier")],
    suffix: Annotated[str, typer.Option(help="The name of the file to create, i.e. disk-0")],
    size: Annotated[str, typer.Option(help="Size in KB, or with a M/G suffix")],
    vm_id: Annotated[int, typer.Option(help="The owner VM")] = DEFAULT_VM_ID,
    format: Annotated[str, typer.Option(help="The image format, i.e. raw or qcow2")] = None
):
    attributes = dict(node_id=node, storage_id=storage, suffix=suffix,
                      size=size, vm_id=vm_id)
    if format is not None:
        attributes['format'] = format
    state = DiskState(**attributes)

    client = connect()
    state = resource.create(state, client)
    if state.id is None:
        console.print(f"Disk '{state.name}' vanished right after creation!")
        raise typer.Exit(code=1)
    print_disk(state)
    console.print(f"Requested {parse_size(size)} bytes, allocated {state.size_bytes} bytes")


@app.command(name='show', help='Show a disk by its id <node>:<storage>:vm-<vmid>-<suffix>')
@handle_exceptions
def show(disk_id: Annotated[str, typer.Argument(help="The disk id")]):
    client = connect()
    print_disk(resource.import_state(disk_id, client))


@app.command(name='update', help='Update a disk in-place')
@handle_exceptions
def update(disk_id: Annotated[str, typer.Argument(help="The disk id")]):
    client = connect()
    state = resource.import_state(disk_id, client)
    resource.update(state, client)


@app.command(name='delete', help='Delete a disk by its id')
@handle_exceptions
def delete(disk_id: Annotated[str, typer.Argument(help="The disk id")]):
    # the id carries node, storage and name, no lookup needed
    state = DiskState.model_construct(id=disk_id, **parse_disk_id(disk_id))
    client = connect()
    resource.delete(state, client)
    console.print(f"Deleted disk '{disk_id}'")


@app.command(name='list', help='List the disk images stored on a datastore')
@handle_exceptions
def list_disks(
    node: Annotated[str, typer.Option(help="The cluster node name")],
    storage: Annotated[str, typer.Option(help="The storage identifier")],
    vm_id: Annotated[int, typer.Option(help="Only list disks owned by this VM")] = None
):
    client = connect()
    files = client.node(node).storage(storage).list_datastore_files(vm_id)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Disk Id", style="dim")
    table.add_column("VM", style="dim")
    table.add_column("Format", style="dim")
    table.add_column("Size", style="dim")
    table.add_column("Used", style="dim")
    for file in files:
        table.add_row(f'{node}:{file.volid}',
                      '' if file.vmid is None else str(file.vmid),
                      file.format or '',
                      '' if file.size is None else format_size(file.size),
                      '' if file.used is None else str(file.used))
    console.print(table)


if __name__ == "__main__":
    app()
