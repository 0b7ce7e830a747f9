#!/usr/bin/env python3
"""
Demo script for Module Editor Core functionality.

This script walks through the main features of the canvas model:
1. Placing nodes and library modules on the canvas
2. Typed connections and the compatibility rules
3. Dragging a node with the pointer protocol
4. Editing and saving a node's configuration
"""

from module_editor_core import (
    CanvasGraphStore, NodeType, DragCoordinator, ConfigSession,
    IncompatibleConnectionError, configure_logging, decode
)


def demo_graph():
    """Demonstrate nodes, connections and cascade deletion."""
    print("=== Demo 1: Nodes and Connections ===")

    store = CanvasGraphStore()
    start = store.add_node(NodeType.START, "", (20, 20))
    token = store.add_node(NodeType.TOKEN, "A", (100, 100))
    instruction = store.add_node(NodeType.INSTRUCTION, "B", (300, 100))

    store.add_connection(start, instruction, "flow")
    store.add_connection(token, instruction, "token")
    store.add_connection(instruction, token, "data")
    print(f"Connections after linking: {len(store.connections)}")

    try:
        store.add_connection(token, instruction, "nft")
    except IncompatibleConnectionError as e:
        print(f"Refused as expected: {e}")

    store.remove_node(token)
    print(f"Connections after removing A: {len(store.connections)}")
    return store


def demo_library(store):
    """Demonstrate placing modules from the library."""
    print("\n=== Demo 2: Module Library ===")

    print("Categories:", ", ".join(store.catalog.categories()))
    for template in store.catalog.search("pool"):
        node_id = store.add_module(template, (400, 300))
        node = store.get_node(node_id)
        print(f"  placed {node.name} as {node.type.value} ({node.kind})")


def demo_drag(store):
    """Demonstrate the press/move/release protocol."""
    print("\n=== Demo 3: Dragging ===")

    node_id = store.add_node(NodeType.DATA, "Payload", (200, 200))
    controller = DragCoordinator(store).controller_for(node_id)

    controller.pointer_down((230, 210))
    for pointer in [(250, 240), (100, 90), (10, 5)]:
        position = controller.pointer_move(pointer)
        print(f"  pointer {pointer} -> node {position}")
    controller.pointer_up()


def demo_config(store):
    """Demonstrate editing a node's configuration."""
    print("\n=== Demo 4: Configuration ===")

    node_id = store.add_module("spl-token", (50, 400))
    session = ConfigSession(store, node_id)
    print(f"Default decimals: {session.get_parameter('decimals')}")

    session.set_parameter('tokenName', "Demo Token")
    session.set_parameter('tokenSymbol', "DEMO")
    session.append_constraint("initialSupply <= 1_000_000")
    session.save()

    node = store.get_node(node_id)
    print(f"Description: {node.description}")
    print("Stored blob:")
    print("-" * 30)
    print(node.config_blob)
    print("-" * 30)
    print(f"Decoded parameters: {decode(node.config_blob).parameters}")


def main():
    """Run all demos."""
    configure_logging()
    print("Module Editor Core - Feature Demonstration")
    print("=" * 50)

    try:
        store = demo_graph()
        demo_library(store)
        demo_drag(store)
        demo_config(store)

        problems = store.validate_model()
        print("\n=== Demo Summary ===")
        print(f"Nodes: {len(store.nodes)}, connections: {len(store.connections)}")
        print(f"Model problems: {problems or 'none'}")
        print("\nAll demos completed successfully!")

    except Exception as e:
        print(f"\nDemo failed with error: {e}")
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    main()
