"""
Unit tests for peer addresses and the peer directory.
"""

import pytest

from muxserver.core import Inet4Address, PeerDirectory, peer_address_from_sockaddr


class TestInet4Address:
    """Tests for the IPv4 peer address."""

    def test_str(self):
        assert str(Inet4Address("127.0.0.1", 8080)) == "127.0.0.1:8080"

    def test_to_sockaddr(self):
        assert Inet4Address("10.0.0.1", 1234).to_sockaddr() == ("10.0.0.1", 1234)

    def test_hashable_and_comparable(self):
        a = Inet4Address("127.0.0.1", 1)
        assert a == Inet4Address("127.0.0.1", 1)
        assert len({a, Inet4Address("127.0.0.1", 1)}) == 1

    @pytest.mark.parametrize("host", ["::1", "localhost", "256.1.1.1", ""])
    def test_rejects_non_ipv4_host(self, host):
        with pytest.raises(ValueError):
            Inet4Address(host, 80)

    def test_rejects_bad_port(self):
        with pytest.raises(ValueError):
            Inet4Address("127.0.0.1", 70000)


class TestPeerAddressFromSockaddr:
    """Converting socket-module addresses."""

    def test_ipv4_tuple(self):
        peer = peer_address_from_sockaddr(("192.168.1.50", 54321))
        assert peer == Inet4Address("192.168.1.50", 54321)

    @pytest.mark.parametrize("sockaddr", [
        ("::1", 8080, 0, 0),       # IPv6
        "/tmp/server.sock",        # AF_UNIX
        ("::1", 8080),             # IPv6 host in a 2-tuple
        None,
    ])
    def test_other_shapes_rejected(self, sockaddr):
        with pytest.raises(ValueError):
            peer_address_from_sockaddr(sockaddr)


class TestPeerDirectory:
    """Tests for PeerDirectory."""

    def test_set_get_remove(self):
        peers = PeerDirectory()
        addr = Inet4Address("127.0.0.1", 40000)

        peers.set(5, addr)
        assert peers.get(5) == addr
        assert 5 in peers
        assert len(peers) == 1

        peers.remove(5)
        assert 5 not in peers
        assert len(peers) == 0

    def test_get_missing_raises(self):
        with pytest.raises(KeyError):
            PeerDirectory().get(7)

    def test_remove_missing_is_noop(self):
        peers = PeerDirectory()
        peers.remove(7)
        assert len(peers) == 0

    def test_set_overwrites(self):
        peers = PeerDirectory()
        peers.set(4, Inet4Address("127.0.0.1", 1))
        peers.set(4, Inet4Address("127.0.0.1", 2))
        assert peers.get(4).port == 2

    def test_handles_sorted(self):
        peers = PeerDirectory()
        for handle in (9, 4, 6):
            peers.set(handle, Inet4Address("127.0.0.1", 1000 + handle))
        assert list(peers.handles()) == [4, 6, 9]
