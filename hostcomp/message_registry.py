from typing import Dict, Iterable, Optional

MESSAGE_INTERFACE_PREFIX = "hostcomp.messages"
SERIALIZATION_INTERFACE = "UnityEngine.ISerializationCallbackReceiver"

DEFAULT_MESSAGES = (
    "Awake",
    "Start",
    "Update",
    "FixedUpdate",
    "LateUpdate",
    "OnEnable",
    "OnDisable",
    "OnDestroy",
    "OnValidate",
    "Reset",
    "OnGUI",
    "OnDrawGizmos",
    "OnDrawGizmosSelected",
    "OnCollisionEnter",
    "OnCollisionStay",
    "OnCollisionExit",
    "OnTriggerEnter",
    "OnTriggerStay",
    "OnTriggerExit",
    "OnControllerColliderHit",
    "OnMouseDown",
    "OnMouseUp",
    "OnMouseEnter",
    "OnMouseExit",
    "OnBecameVisible",
    "OnBecameInvisible",
    "OnApplicationPause",
    "OnApplicationQuit",
    "OnAnimatorMove",
    "OnAnimatorIK",
    "OnJointBreak",
    "OnParticleCollision",
    "OnRenderObject",
    "OnWillRenderObject",
    "OnTransformChildrenChanged",
    "OnTransformParentChanged",
)

DEFAULT_INTERFACES = (SERIALIZATION_INTERFACE,)


class MessageRegistry:
    """
    Maps lifecycle message names to the interface that declares them.
    """

    def __init__(self, messages: Iterable[str] = DEFAULT_MESSAGES):
        self.message_interfaces: Dict[str, str] = {}
        self.interface_names: Dict[str, str] = {}
        for name in messages:
            self.register_message(name)
        for interface in DEFAULT_INTERFACES:
            self.register_interface(interface)

    def register_message(self, name: str, interface: Optional[str] = None) -> str:
        if name in self.message_interfaces:
            raise ValueError(f"Message '{name}' already declared.")
        interface = interface or f"{MESSAGE_INTERFACE_PREFIX}.I{name}"
        self.message_interfaces[name] = interface
        self.register_interface(interface)
        return interface

    def register_interface(self, interface: str) -> None:
        short_name = interface.rsplit(".", 1)[-1]
        self.interface_names.setdefault(short_name, interface)

    def has_message(self, name: str) -> bool:
        return name in self.message_interfaces

    def interface_for(self, name: str) -> Optional[str]:
        return self.message_interfaces.get(name)

    def canonical_interface(self, interface: str) -> str:
        """Expand a known short interface name to its full name."""
        if "." in interface:
            return interface
        return self.interface_names.get(interface, interface)
