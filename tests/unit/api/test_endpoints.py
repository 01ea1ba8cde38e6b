"""Tests for the admin API routes."""

from controller.protocol.encoding import encode_set_fee_protocol
from tests.helpers import MAKER, NEW_OWNER, OPERATOR, OWNER, STRANGER


def as_owner(caller: str = OWNER) -> dict[str, str]:
    return {"X-Caller": caller}


class TestConfigRoute:
    """GET /config."""

    def test_returns_configuration(self, client, deployment):
        response = client.get("/config")

        assert response.status_code == 200
        assert response.json() == {
            "owner": OWNER,
            "trusted": [OPERATOR],
            "factory": deployment.factory,
            "maker": MAKER,
            "protocolFee": 4,
        }


class TestConfigurationRoutes:
    """Owner-only configuration routes."""

    def test_create_fee_tier(self, client, protocol, deployment):
        response = client.post(
            "/fee-tiers", json={"fee": 100, "tickSpacing": 1}, headers=as_owner()
        )

        assert response.status_code == 204
        assert protocol.factory_state(deployment.factory).fee_amount_tick_spacing[100] == 1

    def test_set_factory_owner(self, client, protocol, deployment):
        response = client.put(
            "/factory/owner", json={"address": NEW_OWNER}, headers=as_owner()
        )

        assert response.status_code == 204
        assert protocol.factory_state(deployment.factory).owner == NEW_OWNER

    def test_set_protocol_fee(self, client, controller):
        response = client.put("/protocol-fee", json={"value": 7}, headers=as_owner())

        assert response.status_code == 200
        assert response.json()["protocolFee"] == 7
        assert controller.protocol_fee == 7

    def test_set_maker_normalizes(self, client):
        checksummed = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
        response = client.put("/maker", json={"address": checksummed}, headers=as_owner())

        assert response.status_code == 200
        assert response.json()["maker"] == checksummed.lower()

    def test_set_factory(self, client, protocol):
        other = protocol.deploy_factory()
        response = client.put("/factory", json={"address": other}, headers=as_owner())

        assert response.status_code == 200
        assert response.json()["factory"] == other


class TestBatchRoutes:
    """Owner-or-trusted batch routes."""

    def test_apply_protocol_fee(self, client, protocol, pools):
        response = client.post(
            "/pools/protocol-fee", json={"pools": pools}, headers=as_owner(OPERATOR)
        )

        assert response.status_code == 200
        assert response.json() == {"protocolFee": 4, "pools": pools}
        assert protocol.pool_state(pools[2]).fee_protocol1 == 4

    def test_collect_fees(self, client, protocol, pools):
        response = client.post(
            "/pools/collect", json={"pools": pools[:2]}, headers=as_owner(OPERATOR)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["maker"] == MAKER
        assert data["collected"] == [
            {"pool": pools[0], "amount0": str(10**15), "amount1": str(2 * 10**6)},
            {"pool": pools[1], "amount0": str(2 * 10**15), "amount1": str(4 * 10**6)},
        ]
        assert protocol.pool_state(pools[0]).protocol_fees0 == 0

    def test_empty_batch(self, client, protocol):
        response = client.post("/pools/collect", json={"pools": []}, headers=as_owner())

        assert response.status_code == 200
        assert response.json()["collected"] == []
        assert protocol.calls == []


class TestActionRoute:
    """POST /actions."""

    def test_forwards_calldata(self, client, protocol, pools):
        data = "0x" + encode_set_fee_protocol(6, 8).hex()
        response = client.post(
            "/actions", json={"target": pools[0], "data": data}, headers=as_owner()
        )

        assert response.status_code == 200
        assert response.json() == {"result": "0x"}
        state = protocol.pool_state(pools[0])
        assert (state.fee_protocol0, state.fee_protocol1) == (6, 8)

    def test_forwards_value(self, client, protocol):
        protocol.fund(protocol.account, 100)
        response = client.post(
            "/actions", json={"target": STRANGER, "value": "40"}, headers=as_owner()
        )

        assert response.status_code == 200
        assert protocol.native_balance(STRANGER) == 40


class TestAuthorityRoutes:
    """Ownership and trusted-set routes."""

    def test_transfer_ownership(self, client, controller):
        response = client.put("/owner", json={"address": NEW_OWNER}, headers=as_owner())

        assert response.status_code == 200
        assert response.json()["owner"] == NEW_OWNER
        assert controller.owner == NEW_OWNER

    def test_add_and_remove_trusted(self, client):
        response = client.put(f"/trusted/{STRANGER}", headers=as_owner())
        assert response.json()["trusted"] == sorted([OPERATOR, STRANGER])

        response = client.delete(f"/trusted/{OPERATOR}", headers=as_owner())
        assert response.json()["trusted"] == [STRANGER]

    def test_added_operator_can_collect(self, client, pools):
        client.put(f"/trusted/{STRANGER}", headers=as_owner())
        response = client.post(
            "/pools/collect", json={"pools": pools}, headers=as_owner(STRANGER)
        )
        assert response.status_code == 200
