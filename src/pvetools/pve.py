from typing import (
    Any,
    Dict,
    Optional
)
from urllib.parse import quote

import requests
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    RetryError,
    stop_after_attempt,
    wait_fixed,
    TryAgain
)

from pvetools.exception import (
    ApiError,
    ResourceDoesNotExistError,
    TaskFailedError
)


def raise_for_response(response: requests.Response) -> None:
    if response.ok:
        return

    reason = response.reason or ''
    if response.status_code == 404 or 'does not exist' in reason:
        raise ResourceDoesNotExistError(response.status_code, reason)
    raise ApiError(response.status_code, reason)


class PveClient:
    def __init__(
        self,
        host: str = 'localhost',
        user: str = 'root@pam',
        pwd: str = '',
        port: int = 8006,
        token: str = None,
        verify_ssl: bool = False,
        timeout: float = None,
        session: requests.Session = None
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.timeout = timeout
        self.base_url = f'https://{host}:{port}/api2/json'

        self._session = session or requests.Session()
        self._session.verify = verify_ssl

        if token:
            self._session.headers['Authorization'] = f'PVEAPIToken={token}'
            logger.info(f'Using API token for PVE(host="{self.host}")')
        else:
            self._login(pwd)

    def _login(self, pwd: str) -> None:
        ticket = self.request('POST', '/access/ticket',
                              params={'username': self.user,
                                      'password': pwd})
        self._session.cookies.set('PVEAuthCookie', ticket['ticket'])
        self._session.headers['CSRFPreventionToken'] = \
            ticket['CSRFPreventionToken']
        logger.info(f'Connected to PVE(host="{self.host}") as "{self.user}"')

    def node(self, name: str) -> 'Node':
        from pvetools.node import Node
        return Node(self, name)

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        url = self.base_url + path
        logger.debug(f'{method} {url} params={params}')

        if method in ('POST', 'PUT'):
            response = self._session.request(method, url, data=params,
                                             timeout=self.timeout)
        else:
            response = self._session.request(method, url, params=params,
                                             timeout=self.timeout)
        raise_for_response(response)

        if not response.content:
            return None
        return response.json().get('data')

    def wait_for_task(self, node: str, upid: str) -> None:
        path = f'/nodes/{quote(node, safe="")}/tasks/{quote(upid, safe="")}/status'

        @retry(stop=stop_after_attempt(60),
               wait=wait_fixed(2),
               retry=retry_if_exception_type(TryAgain))
        def wait_until_task_stopped():
            status = self.request('GET', path)
            if status.get('status') != 'stopped':
                logger.debug(f'Task {upid} was still {status.get("status")}')
                raise TryAgain
            return status

        try:
            status = wait_until_task_stopped()
        except RetryError:
            raise TaskFailedError(504, f'task {upid} did not finish')
        exit_status = status.get('exitstatus')
        if exit_status != 'OK':
            raise TaskFailedError(500, f'task {upid} failed: {exit_status}')
        logger.debug(f'Task {upid} finished')
