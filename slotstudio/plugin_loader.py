"""Scans plugins/ directory and loads node type definitions.

Layout:
  plugins/
    {project}/                   <- project folder (grouping)
      manifest.json              <- project manifest (name, version, ...)
      nodes/
        {name}.py                <- one plugin per file

A plugin file registers node types either with the @node decorator on a
VariadicNode subclass, or by convention with a module-level NODE_INFO dict
and an optional NODE_CLASS.
"""
import importlib.util
import json
import os
import sys
from typing import Any, Dict, List

from slotstudio.plugin_api import _NODE_REGISTRY, _NODE_CLASSES, register_node


# --- Module import ---

def _import_module(name: str, path: str):
    """Import a Python file as a module and apply NODE_INFO registration."""
    if name in sys.modules:
        del sys.modules[name]
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)

    # Convention-based registration
    if hasattr(module, "NODE_INFO"):
        register_node(module.NODE_INFO, getattr(module, "NODE_CLASS", None))

    return module


# --- Project loading ---

def _load_project(project_dir: str, project_name: str) -> Dict[str, Any]:
    """Load all plugins from a project folder. Returns project manifest with plugin info."""
    manifest_path = os.path.join(project_dir, "manifest.json")
    with open(manifest_path, "r", encoding="utf-8") as f:
        base_manifest = json.load(f)

    nodes_dir = os.path.join(project_dir, "nodes")
    all_node_types = set()
    plugins_info = []

    if os.path.isdir(nodes_dir):
        for entry in sorted(os.listdir(nodes_dir)):
            entry_path = os.path.join(nodes_dir, entry)
            if not (os.path.isfile(entry_path) and entry.endswith(".py")) or entry.startswith("_"):
                continue
            plugin_name = entry[:-3]
            plugin_id = f"{project_name}/{plugin_name}"
            before = set(_NODE_REGISTRY.keys())
            try:
                _import_module(f"slotstudio_plugin_{project_name}_{plugin_name}", entry_path)
            except Exception as e:
                plugins_info.append({"id": plugin_id, "state": "error", "error": str(e), "node_types": []})
                continue
            new_nodes = sorted(set(_NODE_REGISTRY.keys()) - before)
            all_node_types.update(new_nodes)
            plugins_info.append({"id": plugin_id, "state": "active", "node_types": new_nodes})

    result = dict(base_manifest)
    result.setdefault("name", project_name)
    result["_loaded"] = True
    result["_path"] = project_dir
    result["_node_count"] = len(all_node_types)
    result["_node_types"] = sorted(all_node_types)
    result["_plugins"] = plugins_info
    return result


# --- Main API ---

def load_plugins(plugins_dir: str) -> List[Dict[str, Any]]:
    """Scan plugins directory and load all project folders. Returns list of manifests."""
    results = []
    if not os.path.exists(plugins_dir):
        return results

    for entry in sorted(os.listdir(plugins_dir)):
        project_path = os.path.join(plugins_dir, entry)
        if not os.path.isdir(project_path):
            continue
        # Skip hidden/internal dirs
        if entry.startswith(".") or entry.startswith("_"):
            continue
        if not os.path.exists(os.path.join(project_path, "manifest.json")):
            continue

        try:
            result = _load_project(project_path, entry)
            results.append(result)
            print(f"  Project '{result['name']}' loaded: {len(_NODE_REGISTRY)} total nodes")
        except Exception as e:
            results.append({
                "name": entry,
                "_loaded": False,
                "_error": str(e),
                "_path": project_path,
            })
            print(f"  Project '{entry}' FAILED: {e}")

    return results


def reload_plugins(plugins_dir: str) -> List[Dict[str, Any]]:
    """Clear registries and reload all plugins. Used for hot-reload."""
    _NODE_REGISTRY.clear()
    _NODE_CLASSES.clear()
    return load_plugins(plugins_dir)


def get_full_registry() -> Dict[str, Any]:
    """Return merged registry from all loaded plugins."""
    return dict(_NODE_REGISTRY)
