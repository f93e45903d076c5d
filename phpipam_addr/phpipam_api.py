#!/usr/bin/env python3
"""phpIPAM REST API wrapper.

Only the calls needed to manage address allocations are exposed: section and
subnet listing, address search, first-free allocation, hostname patch and
address removal.
"""

import logging
import urllib3
import requests
from dataclasses import dataclass
from typing import List, Dict, Any, Optional
from urllib.parse import quote

from .config import get_config

logger = logging.getLogger(__name__)


class PhpIPAMAPIError(Exception):
    """phpIPAM API or transport error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class Section:
    """Section data structure."""
    id: str
    name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Section':
        return cls(id=str(data.get('id', '')), name=data.get('name') or '')


@dataclass
class Subnet:
    """Subnet data structure."""
    id: str
    description: str
    section_id: str
    gateway: str = ""
    broadcast: str = ""
    bitmask: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Subnet':
        gateway = data.get('gateway') or {}
        if isinstance(gateway, dict):
            gateway = gateway.get('ip_addr', '')
        calculation = data.get('calculation') or {}
        return cls(
            id=str(data.get('id', '')),
            description=data.get('description') or '',
            section_id=str(data.get('sectionId', '')),
            gateway=gateway or '',
            broadcast=calculation.get('Broadcast', '') or '',
            bitmask=str(calculation.get('Subnet bitmask', '') or ''),
        )


@dataclass
class Address:
    """Address data structure."""
    id: str
    ip: str
    hostname: str = ""
    subnet_id: str = ""
    description: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Address':
        return cls(
            id=str(data.get('id', '')),
            ip=data.get('ip') or '',
            hostname=data.get('hostname') or '',
            subnet_id=str(data.get('subnetId', '')),
            description=data.get('description') or '',
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'ip': self.ip,
            'hostname': self.hostname,
            'subnet_id': self.subnet_id,
            'description': self.description
        }


class PhpIPAMAPI:
    """Wrapper for phpIPAM API operations."""

    def __init__(self, config=None, session: Optional[requests.Session] = None):
        """Initialize PhpIPAMAPI.

        Args:
            config: Config instance. If None, uses global config.
            session: requests session to use. If None, creates new one.
        """
        self.config = config or get_config()
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'phpipam-addr',
            'Accept': 'application/json',
            'Content-Type': 'application/json'
        })
        self._token: Optional[str] = self.config.token or None
        self._static_token = bool(self.config.token)

        if not self.config.verify_ssl:
            # Disable SSL warnings for self-signed certificates
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def _get_token(self) -> str:
        """Get or refresh authentication token.

        Returns:
            phpIPAM session token
        """
        if self._token:
            return self._token

        url = f"{self.config.api_base_url}/user/"
        logger.debug(f"Authenticating to {url} as {self.config.username}")

        try:
            response = self.session.post(
                url,
                auth=(self.config.username, self.config.password),
                verify=self.config.verify_ssl,
                timeout=self.config.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            status = e.response.status_code if e.response is not None else None
            raise PhpIPAMAPIError(f"Authentication failed: {e}", status)
        except ValueError as e:
            raise PhpIPAMAPIError(f"Authentication failed: invalid JSON response: {e}")

        self._token = (data.get('data') or {}).get('token')
        if not self._token:
            raise PhpIPAMAPIError("Failed to get authentication token")
        return self._token

    def _send(self, method: str, url: str, data: Optional[Dict], params: Optional[Dict]):
        return self.session.request(
            method=method,
            url=url,
            headers={'token': self._get_token()},
            json=data,
            params=params,
            verify=self.config.verify_ssl,
            timeout=self.config.timeout
        )

    def _request(self, method: str, endpoint: str,
                 data: Optional[Dict] = None,
                 params: Optional[Dict] = None,
                 allow_not_found: bool = False) -> Optional[Dict[str, Any]]:
        """Make authenticated API request.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            endpoint: API endpoint relative to the application URL (e.g. sections/)
            data: Request body data
            params: Query parameters
            allow_not_found: Return None instead of raising when phpIPAM answers 404

        Returns:
            The phpIPAM response envelope ({code, success, message, data})
        """
        url = f"{self.config.api_base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"API Request: {method} {url}")

        try:
            response = self._send(method, url, data, params)

            # Handle token expiration
            if response.status_code == 401 and not self._static_token:
                self._token = None
                response = self._send(method, url, data, params)

            logger.debug(f"Response Status: {response.status_code}")

            if response.status_code == 404 and allow_not_found:
                return None

            response.raise_for_status()
            body = response.json() if response.content else {}

        except requests.exceptions.RequestException as e:
            status = e.response.status_code if e.response is not None else None
            raise PhpIPAMAPIError(f"API request failed: {method} {endpoint}: {e}", status)
        except ValueError as e:
            raise PhpIPAMAPIError(f"Invalid JSON response from {method} {endpoint}: {e}")

        # Some phpIPAM versions report errors with HTTP 200 and the real code in the body
        code = body.get('code') if isinstance(body, dict) else None
        if code == 404 and allow_not_found:
            return None
        if isinstance(body, dict) and body.get('success') is False:
            raise PhpIPAMAPIError(
                f"phpIPAM error on {method} {endpoint}: {body.get('message', 'unknown error')}",
                code)

        return body

    @staticmethod
    def _data_list(body: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not body:
            return []
        data = body.get('data') or []
        if isinstance(data, dict):
            data = [data]
        return data

    # ============ Sections ============

    def list_sections(self) -> List[Section]:
        """List all sections."""
        body = self._request('GET', 'sections/')
        return [Section.from_api(s) for s in self._data_list(body)]

    def get_section(self, section_id: str) -> Optional[Section]:
        """Get a section by ID, or None if it does not exist."""
        body = self._request('GET', f'sections/{section_id}/', allow_not_found=True)
        if body is None or not body.get('data'):
            return None
        return Section.from_api(body['data'])

    # ============ Subnets ============

    def list_section_subnets(self, section_id: str) -> List[Subnet]:
        """List subnets within a section.

        Args:
            section_id: Section ID

        Returns:
            List of subnets, empty when the section has none
        """
        body = self._request('GET', f'sections/{section_id}/subnets/', allow_not_found=True)
        return [Subnet.from_api(s) for s in self._data_list(body)]

    def get_subnet(self, subnet_id: str) -> Optional[Subnet]:
        """Get a subnet by ID, or None if it does not exist."""
        body = self._request('GET', f'subnets/{subnet_id}/', allow_not_found=True)
        if body is None or not body.get('data'):
            return None
        return Subnet.from_api(body['data'])

    # ============ Addresses ============

    def get_address(self, address_id: str) -> Optional[Address]:
        """Get an address by ID, or None if it does not exist."""
        body = self._request('GET', f'addresses/{address_id}/', allow_not_found=True)
        if body is None or not body.get('data'):
            return None
        return Address.from_api(body['data'])

    def search_hostname(self, hostname: str) -> List[Address]:
        """Search addresses by hostname.

        phpIPAM answers 404 when nothing matches; that is an empty result here.
        """
        body = self._request('GET', f"addresses/search_hostname/{quote(hostname, safe='')}/",
                             allow_not_found=True)
        return [Address.from_api(a) for a in self._data_list(body)]

    def search_ip(self, ip: str) -> List[Address]:
        """Search addresses by literal IP."""
        body = self._request('GET', f'addresses/search/{ip}/', allow_not_found=True)
        return [Address.from_api(a) for a in self._data_list(body)]

    def create_first_free(self, subnet_id: str, hostname: str,
                          owner: str, description: str = '') -> Address:
        """Allocate the first free address in a subnet.

        Args:
            subnet_id: Subnet to allocate from
            hostname: Hostname to record on the address
            owner: Application tag recorded as the address owner
            description: Address description (used as the index tag)

        Returns:
            The allocated address (ID as reported by phpIPAM, may be empty)
        """
        payload = {'hostname': hostname, 'owner': owner}
        if description:
            payload['description'] = description

        body = self._request('POST', f'addresses/first_free/{subnet_id}/', data=payload)
        ip = body.get('data')
        if isinstance(ip, dict):
            ip = ip.get('ip')
        if not ip:
            raise PhpIPAMAPIError(f"No address returned by first free allocation in subnet {subnet_id}")

        return Address(id=str(body.get('id') or ''), ip=ip, hostname=hostname,
                       subnet_id=str(subnet_id), description=description or '')

    def update_hostname(self, hostname: str, address_id: str) -> None:
        """Patch the hostname of an address."""
        self._request('PATCH', f'addresses/{address_id}/', data={'hostname': hostname})

    def delete_address(self, address_id: str) -> None:
        """Delete an address."""
        self._request('DELETE', f'addresses/{address_id}/')
