import functools
import sys

from pydantic import ValidationError
from requests.exceptions import (
    ConnectionError,
    InvalidURL,
    SSLError
)
from rich.console import Console
from rich.markup import escape

from pvetools.exception import (
    ApiError,
    MalformedIdentityError,
    UpdateNotSupportedError
)

console = Console()


def handle_exceptions(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyError as e:
            console.print(f"Exception occurred: {escape(str(e))}")
            console.print("Please set a config file using the command:")
            console.print("pvetools-cli config set --host <Host> --user <username> --pwd <password>")
        except SSLError as e:
            console.print(f"Exception occurred: {escape(str(e))}")
            console.print("The server certificate could not be verified, "
                          "set it again with --no-verify-ssl to skip the check.")
        except ConnectionError as e:
            console.print(f"Exception occurred: {escape(str(e))}")
            console.print("Please check if the network connection and if the host is valid and try again.")
        except InvalidURL as e:
            console.print(f"Exception occurred: {escape(str(e))}. Please enter a valid host.")
        except ApiError as e:
            if e.status_code == 401:
                console.print(f"Exception occurred: {escape(e.reason)}")
                console.print("Please set the correct username or password using the command:\n"
                              "pvetools-cli config set --host <Host> --user <username> --pwd <password>")
            else:
                console.print(f"API call failed: {escape(str(e))}")
        except ValidationError as e:
            console.print("Invalid disk attributes:")
            for error in e.errors():
                field = '.'.join(str(loc) for loc in error['loc'])
                console.print(f"  {field}: {escape(error['msg'])}")
        except (MalformedIdentityError, UpdateNotSupportedError) as e:
            console.print(f"Exception occurred: {escape(str(e))}")
        sys.exit(1)
    return wrapper
