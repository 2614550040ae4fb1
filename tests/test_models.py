"""Tests for Registration and the query views."""

from beacon.agent import AgentSelf, HealthCheck, Member, Registration, Service, ttl_check


class TestRegistration:

    def test_body_with_check(self):
        registration = Registration(name="web", id="web-1", port=8080,
                                    check=ttl_check(30), tags=["a", "b"])
        assert registration.to_dict() == {
            "Name": "web",
            "Id": "web-1",
            "Port": 8080,
            "Check": {"TTL": "30s"},
            "Tags": ["a", "b"],
        }

    def test_missing_check_is_omitted(self):
        body = Registration(name="web", port=8080).to_dict()
        assert "Check" not in body

    def test_missing_id_is_omitted(self):
        body = Registration(name="web", port=8080).to_dict()
        assert "Id" not in body
        assert body["Tags"] == []

    def test_tag_order_is_kept(self):
        body = Registration(name="web", tags=["z", "a", "m"]).to_dict()
        assert body["Tags"] == ["z", "a", "m"]


class TestService:

    def test_from_dict_ignores_unknown_fields(self):
        service = Service.from_dict({
            "ID": "web-1", "Service": "web", "Tags": None, "Port": 80,
            "Address": "", "EnableTagOverride": False, "Weights": {"Passing": 1},
        })
        assert service == Service(id="web-1", service="web", tags=[], port=80, address="")


class TestHealthCheck:

    def test_from_dict(self):
        check = HealthCheck.from_dict({
            "Node": "n1", "CheckID": "service:web", "Name": "Service 'web' check",
            "Status": "passing", "Notes": "", "Output": "ok",
            "ServiceID": "web", "ServiceName": "web", "Definition": {},
        })
        assert check.check_id == "service:web"
        assert check.status == "passing"
        assert check.output == "ok"
        assert check.to_dict()["ServiceID"] == "web"


class TestMember:

    def test_from_dict(self):
        member = Member.from_dict({
            "Name": "node-1", "Addr": "10.0.0.1", "Port": 8301,
            "Tags": {"role": "node"}, "Status": 1,
            "ProtocolMin": 1, "ProtocolMax": 2, "ProtocolCur": 2,
            "DelegateMin": 2, "DelegateMax": 4, "DelegateCur": 4,
        })
        assert member.address == "10.0.0.1"
        assert member.port == 8301
        assert member.delegate_max == 4
        assert member.to_dict()["Addr"] == "10.0.0.1"

    def test_missing_fields_default(self):
        member = Member.from_dict({"Name": "node-2"})
        assert member.port == 0
        assert member.tags == {}


class TestAgentSelf:

    def test_from_dict(self):
        info = AgentSelf.from_dict({
            "Config": {"NodeName": "node-1", "Datacenter": "dc1"},
            "Member": {"Name": "node-1", "Addr": "10.0.0.1"},
        })
        assert info.node_name == "node-1"
        assert info.datacenter == "dc1"
        assert info.member.name == "node-1"

    def test_without_member(self):
        info = AgentSelf.from_dict({"Config": {}})
        assert info.member is None
        assert info.node_name is None
