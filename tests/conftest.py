"""Shared fixtures for HVAC proxy tests."""

from __future__ import annotations

from urllib.parse import quote_plus

import pytest

from core.hvac_proxy.settings import ProxySettings

STATUS_XML = b"""<status version="1.0">
    <localTime>2025-11-15T18:52:45-05:00</localTime>
    <oat>63</oat>
    <filtrlvl>40</filtrlvl>
    <idu><cfm>437</cfm><opstat>off</opstat></idu>
    <zones><zone id="1"><rt>71.0</rt><rh>49</rh><htsp>68.0</htsp><clsp>72.0</clsp></zone></zones>
</status>"""

UPDATES_XML = (
    b'<updates xmlns="http://schema.ota.carrier.com">'
    b'<update xmlns="http://schema.ota.carrier.com"><type>thermostat</type>'
    b"<model>SYSTXCCITC01-A</model><version>14.02</version>"
    b"<url>http://www.ota.ing.carrier.com/updates/systxccit-14.02.hex</url></update>"
    b"<update><type>zone</type><version>2.10</version></update>"
    b"</updates>"
)


def form_encode(xml: bytes) -> bytes:
    """Wrap XML the way the thermostat posts it."""
    return b"data=" + quote_plus(xml.decode()).encode()


@pytest.fixture
def status_xml() -> bytes:
    return STATUS_XML


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / "data")


@pytest.fixture
def settings(data_dir) -> ProxySettings:
    return ProxySettings(data_dir=data_dir)
