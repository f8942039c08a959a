"""Domain Collaborator Interfaces - external systems the club talks to"""
from abc import ABC, abstractmethod

from domain.value_objects import SocioStatus, GatewayCharge


class SocioVerifier(ABC):
    """Membership registry lookup used at registration"""

    @abstractmethod
    async def verify(self, dni: str) -> SocioStatus:
        pass


class PaymentGateway(ABC):
    """Online payment provider"""

    @abstractmethod
    async def charge(self, reservation_id: str) -> GatewayCharge:
        pass
