from ..utils import generate_unique_id, get_obj_klass_import_str


class ObjectIdentityMixin:
    """
    Gives tasks, targets and metrics a process-unique id. Ids are assigned
    lazily, so dataclasses that never call this ``__init__`` still get one.
    """

    def __init__(self, *args, **kwargs):
        generate_unique_id(self)

    @property
    def id(self) -> str:
        return generate_unique_id(self)

    @property
    def __object_import_str__(self) -> str:
        return get_obj_klass_import_str(self)
