import configparser
import os

import typer
from rich.console import Console
from typing_extensions import Annotated

from pvetools.pve import PveClient

app = typer.Typer()
console = Console()

SECTION = 'CONNECTION'


def config_file() -> str:
    return os.environ.get('PVETOOLS_CONFIG',
                          os.path.expanduser('~/.pvetools_config'))


def load_config() -> configparser.ConfigParser:
    config = configparser.ConfigParser()
    config.read(config_file())
    return config


@app.command(name='set', help='For setting a connection config.')
def set_config(
    host: Annotated[str, typer.Option(help="PVE host name or IP", prompt=True)],
    user: Annotated[str, typer.Option(help="User name, i.e. root@pam", prompt=True)],
    pwd: Annotated[str, typer.Option(help="Password", prompt=True, hide_input=True)] = '',
    port: Annotated[int, typer.Option(help="API port")] = 8006,
    token: Annotated[str, typer.Option(help="API token <user>!<id>=<secret>")] = '',
    verify_ssl: Annotated[bool, typer.Option(help="Verify the server certificate")] = False
):
    config = load_config()
    config[SECTION] = {
        'host': host,
        'port': str(port),
        'user': user,
        'pwd': pwd,
        'token': token,
        'verify_ssl': str(verify_ssl),
    }
    with open(config_file(), "w") as f:
        config.write(f)
    console.print(f"Saved connection config to {config_file()}")


@app.command(name='get', help='For getting the current connection config.')
def get_config():
    config = load_config()
    if not config.has_section(SECTION):
        console.print("Connection configuration not set.")
        console.print("Please use command 'pvetools-cli config set --host <Host> --user <username> --pwd <password>'")
        return

    connection_config = config[SECTION]
    for config_key in connection_config:
        value = connection_config.get(config_key)
        if config_key in ('pwd', 'token') and value:
            value = '********'
        console.print(f'{config_key} = {value}')


def connect() -> PveClient:
    connection_config = load_config()[SECTION]
    return PveClient(
        host=connection_config.get('host'),
        port=connection_config.getint('port', 8006),
        user=connection_config.get('user'),
        pwd=connection_config.get('pwd', ''),
        token=connection_config.get('token') or None,
        verify_ssl=connection_config.getboolean('verify_ssl', False)
    )


if __name__ == "__main__":
    app()
