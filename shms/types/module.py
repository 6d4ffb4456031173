from fastapi import APIRouter


class CoreModule:
    def __init__(
        self,
        root: str,
        tag: str,
        router: APIRouter | None = None,
    ):
        """
        Initialize a new Module object.
        :param root: the root of the module, used as a prefix-free identifier
        :param tag: the tag of the module, used by FastAPI
        :param router: an optional custom APIRouter
        """
        self.root = root
        self.tag = tag
        self.router = router or APIRouter(tags=[tag])


class Module(CoreModule):
    """
    A functional module of the application (halls, booking, analytics...).

    Modules are discovered automatically, see `shms/module.py`.
    """
