"""Simulated external collaborators"""
import asyncio
import logging
from uuid import uuid4

from domain.gateways import SocioVerifier, PaymentGateway
from domain.value_objects import SocioStatus, GatewayCharge
from infrastructure import settings


class SimulatedSocioVerifier(SocioVerifier):
    """Stand-in for the membership registry: an even last DNI digit means active member"""

    def __init__(self, latency: float = settings.SOCIO_LOOKUP_LATENCY_SECONDS):
        self.latency = latency
        self.logger = logging.getLogger(self.__class__.__name__)

    async def verify(self, dni: str) -> SocioStatus:
        await asyncio.sleep(self.latency)
        last = str(dni or "").strip()[-1:]
        socio_active = last.isdigit() and int(last) % 2 == 0
        self.logger.debug("DNI ending %r classified socio_active=%s", last, socio_active)
        return SocioStatus(socio_active=socio_active)


class SimulatedPaymentGateway(PaymentGateway):
    """Stand-in for the online gateway: every charge is approved"""

    def __init__(self, latency: float = settings.GATEWAY_LATENCY_SECONDS):
        self.latency = latency

    async def charge(self, reservation_id: str) -> GatewayCharge:
        await asyncio.sleep(self.latency)
        return GatewayCharge(approved=True, operation_id=f"op_{uuid4().hex[:16]}")
