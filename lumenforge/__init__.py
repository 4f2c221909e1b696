"""
LumenForge - A Python Ray Tracing Renderer

A small physically based renderer driven by a scene description language:
- Spheres, planes and cubes placed by affine transformations
- Constructive solid geometry (union, fusion, intersection, difference)
- Diffuse and specular BRDFs with uniform, checkered and image pigments
- On/off, flat and path tracing algorithms
- Perspective and orthogonal cameras with camera animation
- Reproducible multi-threaded rendering to PFM and LDR images
"""

__version__ = "0.1.0"
__author__ = "LumenForge Team"

from .errors import LumenForgeError, GrammarError, DegenerateGeometryError, ConfigurationError, ResourceError
from .vec3 import Vec3, Point, Normal, Vec2D, Color, BLACK, WHITE, VEC_X, VEC_Y, VEC_Z
from .transformations import Transformation, identity, translation, scaling, rotation_x, rotation_y, rotation_z
from .pcg import PCG
from .ray import Ray
from .shapes import HitRecord, Interval, Shape, Sphere, Plane, Cube
from .csg import CSG, CSGOperation
from .world import World
from .pigments import Pigment, UniformPigment, CheckeredPigment, ImagePigment
from .materials import BRDF, DiffuseBRDF, SpecularBRDF, Material
from .tracers import onoff_tracer, flat_tracer, path_tracer
from .camera import Camera, PerspectiveCamera, OrthogonalCamera, Motion
from .hdrimage import HdrImage, read_pfm, write_pfm, load_image
from .tonemapping import ToneMapper, LinearToneMapper, LogAverageToneMapper, save_ldr_image
from .renderer import RenderSettings, ImageTracer, render_scene, render_animation
from .lexer import InputStream, SourceLocation
from .scene_parser import Scene, SceneParser, load_scene, parse_scene
