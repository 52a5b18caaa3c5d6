from shared.clients.ClientManager import ClientManager
from shared.clients.store.StoreClientInterface import StoreClientInterface


class StoreClientManager(ClientManager):
    """
    Selects the document store backend from STORE_ENGINE ("convex").
    """

    client_type = "store"
    class_prefix = "StoreClient"

    def get_client(self) -> StoreClientInterface:
        return self.client
