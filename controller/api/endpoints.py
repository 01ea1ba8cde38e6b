"""API endpoints for the fee controller.

Every route names its caller in the X-Caller header; the controller decides
what that caller may do. Controller errors are mapped to HTTP statuses in
controller.api.main.
"""

from fastapi import APIRouter, Depends, Header

from controller.fee_controller import FeeController, get_default_controller
from controller.models.admin import (
    ActionRequest,
    ActionResponse,
    AddressRequest,
    ApplyResponse,
    CollectionModel,
    CollectResponse,
    ConfigResponse,
    FeeTierRequest,
    PoolsRequest,
    ProtocolFeeRequest,
)

router = APIRouter()


def get_controller() -> FeeController:
    """Dependency provider for the controller instance.

    Override this in tests to inject a controller:
        app.dependency_overrides[get_controller] = lambda: controller

    Returns:
        The controller all routes operate on.
    """
    return get_default_controller()


def config_response(controller: FeeController) -> ConfigResponse:
    config = controller.config
    return ConfigResponse(
        owner=controller.owner,
        trusted=sorted(controller.trusted),
        factory=config.factory,
        maker=config.maker,
        protocol_fee=config.protocol_fee,
    )


@router.get("/config")
def get_config(controller: FeeController = Depends(get_controller)) -> ConfigResponse:
    """Current owner, trusted set, and configuration tuple."""
    return config_response(controller)


@router.post("/fee-tiers", status_code=204)
def create_fee_tier(
    request: FeeTierRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> None:
    """Enable a fee tier on the factory (owner)."""
    controller.create_fee_tier(caller, request.fee, request.tick_spacing)


@router.put("/factory/owner", status_code=204)
def set_factory_owner(
    request: AddressRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> None:
    """Transfer factory ownership away from the controller (owner)."""
    controller.set_factory_owner(caller, request.address)


@router.put("/factory")
def set_factory(
    request: AddressRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> ConfigResponse:
    """Point the controller at another factory (owner)."""
    controller.set_factory(caller, request.address)
    return config_response(controller)


@router.put("/protocol-fee")
def set_protocol_fee(
    request: ProtocolFeeRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> ConfigResponse:
    """Set the pending protocol fee (owner)."""
    controller.set_protocol_fee(caller, request.value)
    return config_response(controller)


@router.put("/maker")
def set_maker(
    request: AddressRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> ConfigResponse:
    """Set the treasury that receives collected fees (owner)."""
    controller.set_maker(caller, request.address)
    return config_response(controller)


@router.post("/pools/protocol-fee")
def apply_protocol_fee(
    request: PoolsRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> ApplyResponse:
    """Apply the pending protocol fee to every listed pool (owner or trusted)."""
    fee = controller.apply_protocol_fee(caller, request.pools)
    return ApplyResponse(protocol_fee=fee, pools=[pool.lower() for pool in request.pools])


@router.post("/pools/collect")
def collect_fees(
    request: PoolsRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> CollectResponse:
    """Sweep protocol fees of every listed pool to the maker (owner or trusted)."""
    collections = controller.collect_fees(caller, request.pools)
    return CollectResponse(
        maker=controller.maker,
        collected=[
            CollectionModel(pool=c.pool, amount0=c.amount0, amount1=c.amount1)
            for c in collections
        ],
    )


@router.post("/actions")
def do_action(
    request: ActionRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> ActionResponse:
    """Issue a raw call through the escape hatch (owner)."""
    result = controller.do_action(
        caller,
        target=request.target,
        value=int(request.value),
        data=bytes.fromhex(request.data[2:]),
    )
    return ActionResponse(result="0x" + result.hex())


@router.put("/owner")
def transfer_ownership(
    request: AddressRequest,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> ConfigResponse:
    """Transfer controller ownership (owner)."""
    controller.transfer_ownership(caller, request.address)
    return config_response(controller)


@router.put("/trusted/{address}")
def add_trusted(
    address: str,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> ConfigResponse:
    """Grant trusted-operator rights (owner)."""
    controller.add_trusted(caller, address)
    return config_response(controller)


@router.delete("/trusted/{address}")
def remove_trusted(
    address: str,
    caller: str = Header(alias="X-Caller"),
    controller: FeeController = Depends(get_controller),
) -> ConfigResponse:
    """Revoke trusted-operator rights (owner)."""
    controller.remove_trusted(caller, address)
    return config_response(controller)
