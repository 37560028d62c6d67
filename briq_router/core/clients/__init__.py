from briq_router.core.clients.SubgraphClient import SubgraphClient

__all__ = ["SubgraphClient"]
