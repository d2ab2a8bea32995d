from services.sync.EntityStore import EntityStore
from services.sync.SequenceTracker import SequenceTracker
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import UnauthenticatedError
from shared.models.principal import Principal


class SessionContext:
    """
    State of one signed-in session: the principal, the entity store and the sequence tracker.

    The principal is supplied by the session collaborator and replaced wholesale on
    login and logout. Logout makes every outstanding request stale and empties the store.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self.tracker = SequenceTracker()
        self.store = EntityStore(self.tracker)
        self.principal: Principal | None = None

    def init(self, principal: Principal) -> None:
        if self.principal is not None:
            self.teardown()
        self.principal = principal
        self.logging.info("Session started for principal id=%s (roles=%s, departments=%s)", principal.id, sorted(principal.roles), sorted(principal.departments))

    def teardown(self) -> None:
        if self.principal is not None:
            self.logging.info("Session of principal id=%s ended", self.principal.id)
        self.tracker.invalidate_all()
        self.store.clear()
        self.principal = None

    def update_principal(self, principal: Principal) -> None:
        """Replaces the principal within the running session, e.g. after its departments were reloaded."""
        self.principal = principal

    def require_principal(self) -> Principal:
        """
        Returns the authenticated principal.

        Raises:
            UnauthenticatedError: If nobody is signed in or the principal carries no credential.
        """
        if self.principal is None or not self.principal.token:
            self.logging.warning("Operation attempted without an authenticated session")
            raise UnauthenticatedError("No authenticated session")
        return self.principal

    def require_credential(self) -> str:
        return self.require_principal().token
