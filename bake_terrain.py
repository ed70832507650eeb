# bake_terrain.py

"""
================================================================================
OFFLINE TERRAIN BAKER SCRIPT
================================================================================
This script is a command-line tool for generating a terrain once and writing
everything a renderer needs to disk: the mesh buffers, the normal map and the
seamless detail map. Each buffer is released as soon as it has been written.

Usage:
    python bake_terrain.py --config path/to/your/config.json
================================================================================
"""
import os
import sys
import json
import logging
import argparse
import time
import numpy as np
from PIL import Image
from tqdm import tqdm

from terrain_generator import TerrainGenerator, TerrainGeneratorError
from terrain_generator import config as DEFAULTS
from terrain_generator.texture_maps import heights_to_grayscale, normals_to_rgb


def save_rgb_image(color_array: np.ndarray, directory: str, name: str) -> str:
    """Saves an (height, width, 3) uint8 array as a PNG and returns its path."""
    os.makedirs(directory, exist_ok=True)
    file_path = os.path.join(directory, f"{name}.png")
    Image.fromarray(color_array).save(file_path, 'PNG')
    return file_path


def bake_mesh(generator: TerrainGenerator, output_dir: str, logger: logging.Logger):
    mesh = generator.generate_heightfield()

    mesh_path = os.path.join(output_dir, "mesh.npz")
    np.savez_compressed(
        mesh_path,
        vertices=mesh.vertices,
        indices=mesh.indices,
        height_range=np.float32(mesh.height_range),
    )
    heightmap_path = save_rgb_image(heights_to_grayscale(mesh.heights()), output_dir, "heightmap")
    logger.info(f"Mesh written to {mesh_path}, height map to {heightmap_path}.")


def bake_normal_map(generator: TerrainGenerator, output_dir: str, logger: logging.Logger):
    normal_map = generator.generate_normal_map()
    path = save_rgb_image(normals_to_rgb(normal_map), output_dir, "normal_map")
    generator.release_normal_map()
    # The normal map may reuse the mesh heights, so the mesh is released last.
    generator.release_mesh_buffers()
    logger.info(f"Normal map written to {path}.")


def bake_seamless_map(generator: TerrainGenerator, output_dir: str, logger: logging.Logger):
    seamless_map = generator.generate_seamless_map()
    path = save_rgb_image(normals_to_rgb(seamless_map), output_dir, "seamless_map")
    generator.release_seamless_map()
    logger.info(f"Seamless map written to {path}.")


# --- Main Baking Function ---
def bake_terrain(config_path: str, output_dir: str = None) -> bool:
    """
    Loads a configuration, generates the terrain and all of its maps, and
    saves them to the output directory.
    """
    # 1. --- Setup Logging ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    logger = logging.getLogger("Baker")

    # 2. --- Load Configuration ---
    logger.info(f"Loading configuration from: {config_path}")
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.critical(f"Failed to load or parse config file: {e}")
        return False

    terrain_params = config.get('terrain_generation_parameters', {})
    seed = terrain_params.get('seed', DEFAULTS.DEFAULT_SEED)

    # 3. --- Initialize the Terrain Generator ---
    try:
        generator = TerrainGenerator(config=terrain_params, logger=logger)
    except TerrainGeneratorError as e:
        logger.critical(f"Invalid terrain configuration: {e}")
        return False

    # 4. --- Prepare Output Directory ---
    output_dir = output_dir or f"baked_terrains/seed_{seed}"
    os.makedirs(output_dir, exist_ok=True)

    # 5. --- Bake All Stages ---
    stages = [
        ("Heightfield", bake_mesh),
        ("Normal map", bake_normal_map),
        ("Seamless map", bake_seamless_map),
    ]
    start_time = time.perf_counter()
    for name, stage in tqdm(stages, desc="Baking Terrain"):
        logger.info(f"--- {name} ---")
        stage(generator, output_dir, logger)

    # --- Finalization ---
    manifest = {
        'seed': generator.noise.seed,
        'height_range': generator.height_range,
        'vertices_per_side': generator.vertices_per_side,
        'normal_map_size': generator.normal_map_size,
        'seamless_map_size': generator.seamless_noise.config.texture_resolution,
    }
    manifest_path = os.path.join(output_dir, "manifest.json")
    with open(manifest_path, 'w') as f:
        json.dump(manifest, f, indent=2)

    end_time = time.perf_counter()
    logger.info(f"Baking complete! Total time: {end_time - start_time:.2f} seconds.")
    logger.info(f"Baked terrain and manifest.json saved to: {output_dir}")
    return True


# --- Command-Line Interface ---
def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Offline Terrain Baker for the procedural heightfield generator.")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the JSON configuration file for the terrain to be baked."
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory. Defaults to baked_terrains/seed_<seed>."
    )
    args = parser.parse_args(argv)
    return 0 if bake_terrain(args.config, args.output) else 1


if __name__ == "__main__":
    sys.exit(main())
