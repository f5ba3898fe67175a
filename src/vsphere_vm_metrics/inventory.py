"""
Virtual Machine Inventory

Lists every virtual machine visible to the session in one property
collector retrieval.

Author: uldyssian-sh
License: MIT
"""

from typing import Any, List

import structlog
from pyVmomi import vim, vmodl

from .exceptions import InventoryError
from .models import VirtualMachineRef
from .session import Session

logger = structlog.get_logger(__name__)

VM_PROPERTIES = ["name"]


def _build_filter_spec(view: Any) -> Any:
    """Filter selecting the name of every object in the container view"""
    traversal_spec = vmodl.query.PropertyCollector.TraversalSpec(
        name="traverseView",
        path="view",
        skip=False,
        type=vim.view.ContainerView
    )
    obj_spec = vmodl.query.PropertyCollector.ObjectSpec(
        obj=view,
        skip=True,
        selectSet=[traversal_spec]
    )
    property_spec = vmodl.query.PropertyCollector.PropertySpec(
        type=vim.VirtualMachine,
        pathSet=VM_PROPERTIES,
        all=False
    )
    return vmodl.query.PropertyCollector.FilterSpec(
        objectSet=[obj_spec],
        propSet=[property_spec]
    )


def _to_ref(object_content: Any) -> VirtualMachineRef:
    properties = {prop.name: prop.val for prop in object_content.propSet or []}
    moref = object_content.obj
    return VirtualMachineRef(
        moid=moref._moId,
        name=properties.get("name", moref._moId),
        moref=moref
    )


def _retrieve(collector: Any, filter_spec: Any) -> List[VirtualMachineRef]:
    options = vmodl.query.PropertyCollector.RetrieveOptions()
    result = collector.RetrievePropertiesEx([filter_spec], options)

    vms = []
    while result:
        vms.extend(_to_ref(obj) for obj in result.objects)
        if not result.token:
            break
        result = collector.ContinueRetrievePropertiesEx(result.token)

    return vms


def _list(session: Session) -> List[VirtualMachineRef]:
    content = session.content

    try:
        view = content.viewManager.CreateContainerView(
            session.root_folder, [vim.VirtualMachine], True
        )
    except Exception as e:
        raise InventoryError(f"Error creating container view: {e}") from e

    try:
        vms = _retrieve(content.propertyCollector, _build_filter_spec(view))
    except Exception as e:
        raise InventoryError(f"Error retrieving virtual machines: {e}") from e
    finally:
        try:
            view.Destroy()
        except Exception as e:
            logger.warning("Failed to destroy container view", error=str(e))

    return sorted(vms, key=lambda vm: (vm.name, vm.moid))


async def list_virtual_machines(session: Session) -> List[VirtualMachineRef]:
    """
    Enumerate all virtual machines under the session's root folder.

    The container view opened for the enumeration is always destroyed
    before returning, whether retrieval succeeded or not.

    Raises:
        InventoryError: The view could not be created or read
    """
    session.require_open()
    vms = await session.call(_list, session)
    logger.info("Retrieved virtual machines", count=len(vms))
    return vms
