import json
from typing import Any

from pydantic import BaseModel, ConfigDict

# Advertised with every state push; the client owns the actual balancing.
LB_POLICY = "round_robin"


class EndpointAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    addr: str
    server_name: str


class ClientState(BaseModel):
    """One full address-set replacement as handed to the sink."""

    model_config = ConfigDict(frozen=True)

    addresses: tuple[EndpointAddress, ...] = ()
    lb_policy: str = LB_POLICY

    def service_config(self) -> dict[str, Any]:
        """gRPC service config carrying the load-balancing policy."""
        return {"loadBalancingPolicy": self.lb_policy}

    def service_config_json(self) -> str:
        return json.dumps(self.service_config())
