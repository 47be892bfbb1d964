"""Two-phase scene-graph assembly.

Phase 1 materializes every entity array with its reference fields left empty.
Phase 2 rewrites each index into a direct relation. Because every array is
complete before any index into it is resolved, forward references (a node
naming a child declared later, a skin naming joints) need no special casing.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from gltfgraph.accessors import FLOAT, UNSIGNED_BYTE, UNSIGNED_INT, UNSIGNED_SHORT, Accessor, resolve_accessors
from gltfgraph.bounds import BoundingBox
from gltfgraph.buffers import Buffer, BufferView, resolve_buffer_views, resolve_buffers
from gltfgraph.errors import FormatError, InvalidReferenceError, MissingDataError
from gltfgraph.extensions import (
    KHR_LIGHTS,
    KHR_LIGHTS_PUNCTUAL,
    KHR_MATERIALS_PBR_SPECULAR_GLOSSINESS,
    ExtensionContext,
    ExtensionRegistry,
    Light,
)
from gltfgraph.graph import (
    Animation,
    AnimationChannel,
    AnimationSampler,
    Camera,
    Mesh,
    Node,
    Primitive,
    Scene,
    Skin,
)
from gltfgraph.materials import (
    Image,
    Material,
    Texture,
    TextureRef,
    TextureSampler,
    build_images,
    build_material,
    build_samplers,
    build_textures,
)
from gltfgraph.models import CameraDef, GltfDocument, NodeDef
from gltfgraph.parser import ParsedSource
from gltfgraph.references import lookup, lookup_optional
from gltfgraph.storage import BufferAllocator
from gltfgraph.transforms import IDENTITY_QUATERNION, matrix_from_column_major
from gltfgraph.warning_policy import WarningPolicy, emit_warning

INDEX_COMPONENTS = frozenset({UNSIGNED_BYTE, UNSIGNED_SHORT, UNSIGNED_INT})
LIGHT_EXTENSIONS = (KHR_LIGHTS_PUNCTUAL, KHR_LIGHTS)


@dataclass
class AssembledGraph:
    buffers: list[Buffer] = field(default_factory=list)
    buffer_views: list[BufferView] = field(default_factory=list)
    accessors: list[Accessor] = field(default_factory=list)
    images: list[Image] = field(default_factory=list)
    samplers: list[TextureSampler] = field(default_factory=list)
    textures: list[Texture] = field(default_factory=list)
    materials: list[Material] = field(default_factory=list)
    meshes: list[Mesh] = field(default_factory=list)
    skins: list[Skin] = field(default_factory=list)
    cameras: list[Camera] = field(default_factory=list)
    lights: list[Light] = field(default_factory=list)
    animations: list[Animation] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    scenes: list[Scene] = field(default_factory=list)
    default_scene: Scene | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    # extensions of the document's `asset` metadata object
    info_extensions: dict[str, Any] = field(default_factory=dict)


def assemble(
    parsed: ParsedSource,
    *,
    allocator: BufferAllocator,
    registry: ExtensionRegistry,
    warning_policy: WarningPolicy | None = None,
) -> AssembledGraph:
    """Build the resolved graph for a parsed document.

    Raises:
        InvalidReferenceError: On any out-of-range index, or a node graph that is not a forest.
        RangeError: On byte spans outside their buffer or buffer view.
        FormatError: On structurally inconsistent entities.
        UnsupportedFeatureError: On unrecognized accessor layouts.
        MissingDataError: On absent binary data or a default scene with no scenes.
    """
    doc = parsed.document
    _check_required_extensions(doc, registry, warning_policy)

    # data layer: each array depends only on the ones before it
    buffers = resolve_buffers(doc, parsed.binary_chunk, allocator, parsed.base_path)
    views = resolve_buffer_views(doc, buffers)
    accessors = resolve_accessors(doc, views)
    images = build_images(doc, views)
    samplers = build_samplers(doc)
    textures = build_textures(doc, images, samplers)

    context = ExtensionContext(textures=textures, warning_policy=warning_policy)
    root_recognized, root_opaque = registry.decode("asset", doc.extensions, "asset", context)
    root_opaque.update((k, v) for k, v in root_recognized.items() if k not in LIGHT_EXTENSIONS)

    # phase 1: materialize
    graph = AssembledGraph(
        buffers=buffers,
        buffer_views=views,
        accessors=accessors,
        images=images,
        samplers=samplers,
        textures=textures,
        lights=context.lights,
        extensions=root_opaque,
    )
    graph.materials = [build_material(i, doc, textures) for i in range(len(doc.materials))]
    graph.cameras = [_build_camera(i, cam) for i, cam in enumerate(doc.cameras)]
    graph.meshes = [
        Mesh(index=i, primitives=[], weights=list(m.weights), name=m.name, extras=m.extras)
        for i, m in enumerate(doc.meshes)
    ]
    graph.skins = [Skin(index=i, joints=[], name=s.name, extras=s.extras) for i, s in enumerate(doc.skins)]
    graph.nodes = [_build_node(i, n) for i, n in enumerate(doc.nodes)]
    graph.animations = [
        Animation(index=i, channels=[], samplers=[], name=a.name, extras=a.extras)
        for i, a in enumerate(doc.animations)
    ]
    graph.scenes = [Scene(index=i, nodes=[], name=s.name, extras=s.extras) for i, s in enumerate(doc.scenes)]

    # phase 2: resolve
    graph.info_extensions = _nested_extensions(doc.asset.extensions, "asset info", registry, context)
    _link_data_layer(graph, registry, context)
    for material in graph.materials:
        _link_material(material, doc, registry, context)
    for camera in graph.cameras:
        _link_camera(camera, registry, context)
    for mesh in graph.meshes:
        _link_mesh(mesh, doc, graph, registry, context)
    for node in graph.nodes:
        _link_node(node, doc, graph, registry, context)
    _check_forest(graph.nodes)
    for skin in graph.skins:
        _link_skin(skin, doc, graph, registry, context)
    for animation in graph.animations:
        _link_animation(animation, doc, graph, registry, context)
    for scene in graph.scenes:
        _link_scene(scene, doc, graph, registry, context)
    graph.default_scene = _default_scene(doc, graph.scenes)

    _compute_node_bounds(graph.nodes)
    return graph


def _check_required_extensions(
    doc: GltfDocument, registry: ExtensionRegistry, policy: WarningPolicy | None
) -> None:
    for name in doc.extensions_required:
        if not registry.is_recognized(name):
            emit_warning(
                "W02",
                f"extensionsRequired lists {name!r}, which is not recognized; data kept as opaque",
                policy=policy,
            )


def _decode_owner_extensions(
    owner: Any,
    scope: str,
    raw: dict[str, Any],
    where: str,
    registry: ExtensionRegistry,
    context: ExtensionContext,
    typed: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Decode an owner's extensions; names in ``typed`` become fields, other results stay in ``extensions``."""
    recognized, opaque = registry.decode(scope, raw, where, context)
    owner.extensions = {**opaque, **{k: v for k, v in recognized.items() if k not in typed}}
    return recognized


def _generic_extensions(
    owner: Any, raw: dict[str, Any], where: str, registry: ExtensionRegistry, context: ExtensionContext
) -> None:
    # owners without registered extensions keep everything, still reporting unknown names
    _decode_owner_extensions(owner, "generic", raw, where, registry, context)


def _nested_extensions(
    raw: dict[str, Any], where: str, registry: ExtensionRegistry, context: ExtensionContext
) -> dict[str, Any]:
    """Extensions of a sub-object (textureInfo, sparse, ...) with decoded results in place of payloads."""
    recognized, opaque = registry.decode("generic", raw, where, context)
    return {**opaque, **recognized}


def _nested_ref(
    ref: TextureRef | None, where: str, registry: ExtensionRegistry, context: ExtensionContext
) -> TextureRef | None:
    if ref is None or not ref.extensions:
        return ref
    return replace(ref, extensions=_nested_extensions(ref.extensions, where, registry, context))


def _link_data_layer(graph: AssembledGraph, registry: ExtensionRegistry, context: ExtensionContext) -> None:
    """Report unknown extensions on entities built before the registry runs."""
    arrays = (
        ("buffers", graph.buffers),
        ("bufferViews", graph.buffer_views),
        ("accessors", graph.accessors),
        ("images", graph.images),
        ("samplers", graph.samplers),
        ("textures", graph.textures),
    )
    for label, owners in arrays:
        for i, owner in enumerate(owners):
            _generic_extensions(owner, owner.extensions, f"{label}[{i}]", registry, context)

    for accessor in graph.accessors:
        sparse = accessor.sparse
        if sparse is None:
            continue
        where = f"accessors[{accessor.index}].sparse"
        accessor.sparse = replace(
            sparse,
            extensions=_nested_extensions(sparse.extensions, where, registry, context),
            indices_extensions=_nested_extensions(sparse.indices_extensions, f"{where}.indices", registry, context),
            values_extensions=_nested_extensions(sparse.values_extensions, f"{where}.values", registry, context),
        )


# ---------------------------------------------------------------------------
# Phase 1 builders
# ---------------------------------------------------------------------------


def _build_camera(index: int, cam: CameraDef) -> Camera:
    where = f"cameras[{index}]"
    if cam.type == "perspective":
        p = cam.perspective
        if p is None:
            raise FormatError(f"{where}: type 'perspective' requires a perspective object")
        if p.zfar is not None and p.zfar <= p.znear:
            raise FormatError(f"{where}.perspective: zfar must be greater than znear")
        return Camera(
            index=index,
            type="perspective",
            yfov=p.yfov,
            znear=p.znear,
            zfar=p.zfar,
            aspect_ratio=p.aspect_ratio,
            name=cam.name,
            extensions=cam.extensions,
            extras=cam.extras,
            projection_extensions=dict(p.extensions),
            projection_extras=p.extras,
        )
    o = cam.orthographic
    if o is None:
        raise FormatError(f"{where}: type 'orthographic' requires an orthographic object")
    if o.zfar <= o.znear:
        raise FormatError(f"{where}.orthographic: zfar must be greater than znear")
    if o.xmag == 0.0 or o.ymag == 0.0:
        raise FormatError(f"{where}.orthographic: xmag and ymag must be non-zero")
    return Camera(
        index=index,
        type="orthographic",
        xmag=o.xmag,
        ymag=o.ymag,
        znear=o.znear,
        zfar=o.zfar,
        name=cam.name,
        extensions=cam.extensions,
        extras=cam.extras,
        projection_extensions=dict(o.extensions),
        projection_extras=o.extras,
    )


def _build_node(index: int, n: NodeDef) -> Node:
    where = f"nodes[{index}]"
    has_trs = n.translation is not None or n.rotation is not None or n.scale is not None
    if n.matrix is not None and has_trs:
        raise FormatError(f"{where}: matrix and translation/rotation/scale are mutually exclusive")
    return Node(
        index=index,
        name=n.name,
        matrix=matrix_from_column_major(n.matrix) if n.matrix is not None else None,
        translation=tuple(n.translation) if n.translation is not None else (0.0, 0.0, 0.0),
        rotation=tuple(n.rotation) if n.rotation is not None else IDENTITY_QUATERNION,
        scale=tuple(n.scale) if n.scale is not None else (1.0, 1.0, 1.0),
        weights=list(n.weights) if n.weights is not None else None,
        extras=n.extras,
    )


# ---------------------------------------------------------------------------
# Phase 2 linkers
# ---------------------------------------------------------------------------


def _link_material(
    material: Material, doc: GltfDocument, registry: ExtensionRegistry, context: ExtensionContext
) -> None:
    where = f"materials[{material.index}]"
    mat = doc.materials[material.index]
    recognized = _decode_owner_extensions(
        material,
        "material",
        mat.extensions,
        where,
        registry,
        context,
        typed=(KHR_MATERIALS_PBR_SPECULAR_GLOSSINESS,),
    )
    material.specular_glossiness = recognized.get(KHR_MATERIALS_PBR_SPECULAR_GLOSSINESS)

    mr = material.metallic_roughness
    pbr_where = f"{where}.pbrMetallicRoughness"
    material.metallic_roughness = replace(
        mr,
        base_color_texture=_nested_ref(mr.base_color_texture, f"{pbr_where}.baseColorTexture", registry, context),
        metallic_roughness_texture=_nested_ref(
            mr.metallic_roughness_texture, f"{pbr_where}.metallicRoughnessTexture", registry, context
        ),
        extensions=_nested_extensions(mr.extensions, pbr_where, registry, context),
    )
    material.normal_texture = _nested_ref(material.normal_texture, f"{where}.normalTexture", registry, context)
    material.occlusion_texture = _nested_ref(
        material.occlusion_texture, f"{where}.occlusionTexture", registry, context
    )
    material.emissive_texture = _nested_ref(
        material.emissive_texture, f"{where}.emissiveTexture", registry, context
    )
    sg = material.specular_glossiness
    if sg is not None:
        sg_where = f"{where}.extensions.{KHR_MATERIALS_PBR_SPECULAR_GLOSSINESS}"
        material.specular_glossiness = replace(
            sg,
            diffuse_texture=_nested_ref(sg.diffuse_texture, f"{sg_where}.diffuseTexture", registry, context),
            specular_glossiness_texture=_nested_ref(
                sg.specular_glossiness_texture, f"{sg_where}.specularGlossinessTexture", registry, context
            ),
        )

    if material.specular_glossiness is not None and mat.pbr_metallic_roughness is not None:
        emit_warning(
            "W03",
            f"{where}: declares both metallic-roughness and specular-glossiness; "
            "specular-glossiness takes precedence",
            policy=context.warning_policy,
        )


def _link_camera(camera: Camera, registry: ExtensionRegistry, context: ExtensionContext) -> None:
    where = f"cameras[{camera.index}]"
    _generic_extensions(camera, camera.extensions, where, registry, context)
    camera.projection_extensions = _nested_extensions(
        camera.projection_extensions, f"{where}.{camera.type}", registry, context
    )


def _link_mesh(
    mesh: Mesh, doc: GltfDocument, graph: AssembledGraph, registry: ExtensionRegistry, context: ExtensionContext
) -> None:
    mesh_def = doc.meshes[mesh.index]
    where = f"meshes[{mesh.index}]"
    _generic_extensions(mesh, mesh_def.extensions, where, registry, context)

    box = BoundingBox.empty()
    for p_index, prim in enumerate(mesh_def.primitives):
        p_where = f"{where}.primitives[{p_index}]"
        attributes = {
            name: lookup(graph.accessors, idx, f"{p_where}.attributes.{name}", "accessors")
            for name, idx in prim.attributes.items()
        }
        targets = [
            {
                name: lookup(graph.accessors, idx, f"{p_where}.targets[{t_index}].{name}", "accessors")
                for name, idx in target.items()
            }
            for t_index, target in enumerate(prim.targets)
        ]
        indices = lookup_optional(graph.accessors, prim.indices, f"{p_where}.indices", "accessors")
        if indices is not None and (
            indices.type != "SCALAR" or indices.component_type not in INDEX_COMPONENTS or indices.normalized
        ):
            raise FormatError(f"{p_where}.indices: must be an unsigned integer SCALAR accessor")

        primitive = Primitive(
            attributes=attributes,
            indices=indices,
            material=lookup_optional(graph.materials, prim.material, f"{p_where}.material", "materials"),
            mode=prim.mode,
            targets=targets,
            extras=prim.extras,
        )
        _generic_extensions(primitive, prim.extensions, p_where, registry, context)
        primitive.bounding_box = _primitive_bounds(primitive, p_where, context)
        box = box.union(primitive.bounding_box)
        mesh.primitives.append(primitive)
    mesh.bounding_box = box


def _primitive_bounds(primitive: Primitive, where: str, context: ExtensionContext) -> BoundingBox:
    positions = primitive.positions
    if positions is None:
        return BoundingBox.empty()
    if positions.type != "VEC3":
        raise FormatError(f"{where}.attributes.POSITION: must be VEC3, got {positions.type}")
    declared = positions.min is not None or positions.max is not None
    if declared and not positions.has_declared_bounds:
        emit_warning(
            "W04",
            f"accessors[{positions.index}]: min/max do not match its {positions.components} components; "
            "scanning elements instead",
            policy=context.warning_policy,
        )
    return positions.bounding_box()


def _link_node(
    node: Node, doc: GltfDocument, graph: AssembledGraph, registry: ExtensionRegistry, context: ExtensionContext
) -> None:
    node_def = doc.nodes[node.index]
    where = f"nodes[{node.index}]"
    for c_index, child_index in enumerate(node_def.children):
        child = lookup(graph.nodes, child_index, f"{where}.children[{c_index}]", "nodes")
        if child.parent is not None:
            raise InvalidReferenceError(
                f"{where}.children[{c_index}]: nodes[{child.index}] already has parent "
                f"nodes[{child.parent.index}]"
            )
        if child is node:
            raise InvalidReferenceError(f"{where}.children[{c_index}]: node lists itself as a child")
        child.parent = node
        node.children.append(child)
    node.mesh = lookup_optional(graph.meshes, node_def.mesh, f"{where}.mesh", "meshes")
    node.camera = lookup_optional(graph.cameras, node_def.camera, f"{where}.camera", "cameras")
    node.skin = lookup_optional(graph.skins, node_def.skin, f"{where}.skin", "skins")

    recognized = _decode_owner_extensions(
        node, "node", node_def.extensions, where, registry, context, typed=LIGHT_EXTENSIONS
    )
    node.light = next((recognized[name] for name in LIGHT_EXTENSIONS if name in recognized), None)


def _check_forest(nodes: list[Node]) -> None:
    """Reject cycles: every node must be reachable from a parentless node."""
    reached: set[int] = set()
    for root in nodes:
        if root.parent is None:
            reached.update(n.index for n in root.walk())
    if len(reached) != len(nodes):
        cyclic = sorted(n.index for n in nodes if n.index not in reached)
        raise InvalidReferenceError(f"nodes: hierarchy contains a cycle through nodes {cyclic}")


def _link_skin(
    skin: Skin, doc: GltfDocument, graph: AssembledGraph, registry: ExtensionRegistry, context: ExtensionContext
) -> None:
    skin_def = doc.skins[skin.index]
    where = f"skins[{skin.index}]"
    skin.joints = [
        lookup(graph.nodes, idx, f"{where}.joints[{j}]", "nodes") for j, idx in enumerate(skin_def.joints)
    ]
    skin.skeleton = lookup_optional(graph.nodes, skin_def.skeleton, f"{where}.skeleton", "nodes")
    ibm = lookup_optional(
        graph.accessors, skin_def.inverse_bind_matrices, f"{where}.inverseBindMatrices", "accessors"
    )
    if ibm is not None:
        if ibm.type != "MAT4" or ibm.component_type != FLOAT:
            raise FormatError(f"{where}.inverseBindMatrices: must be a MAT4 FLOAT accessor")
        if ibm.count < len(skin.joints):
            raise FormatError(
                f"{where}.inverseBindMatrices: {ibm.count} matrices for {len(skin.joints)} joints"
            )
    skin.inverse_bind_matrices = ibm
    _generic_extensions(skin, skin_def.extensions, where, registry, context)


def _link_animation(
    animation: Animation,
    doc: GltfDocument,
    graph: AssembledGraph,
    registry: ExtensionRegistry,
    context: ExtensionContext,
) -> None:
    anim_def = doc.animations[animation.index]
    where = f"animations[{animation.index}]"
    _generic_extensions(animation, anim_def.extensions, where, registry, context)

    for s_index, s in enumerate(anim_def.samplers):
        s_where = f"{where}.samplers[{s_index}]"
        input_acc = lookup(graph.accessors, s.input, f"{s_where}.input", "accessors")
        output_acc = lookup(graph.accessors, s.output, f"{s_where}.output", "accessors")
        if input_acc.type != "SCALAR" or input_acc.component_type != FLOAT:
            raise FormatError(f"{s_where}.input: keyframe times must be a SCALAR FLOAT accessor")
        per_key = 3 if s.interpolation == "CUBICSPLINE" else 1
        if output_acc.count % (input_acc.count * per_key) != 0:
            raise FormatError(
                f"{s_where}: {output_acc.count} output elements do not fit {input_acc.count} "
                f"{s.interpolation} keyframes"
            )
        sampler = AnimationSampler(
            index=s_index,
            input=input_acc,
            output=output_acc,
            interpolation=s.interpolation,
            extras=s.extras,
        )
        _generic_extensions(sampler, s.extensions, s_where, registry, context)
        animation.samplers.append(sampler)

    for c_index, c in enumerate(anim_def.channels):
        c_where = f"{where}.channels[{c_index}]"
        sampler = lookup(animation.samplers, c.sampler, f"{c_where}.sampler", f"{where}.samplers")
        node = lookup_optional(graph.nodes, c.target.node, f"{c_where}.target.node", "nodes")
        if c.target.path != "weights":
            expected = 3 if sampler.interpolation == "CUBICSPLINE" else 1
            if sampler.output.count != sampler.input.count * expected:
                raise FormatError(
                    f"{c_where}: {c.target.path} output has {sampler.output.count} elements, "
                    f"expected {sampler.input.count * expected}"
                )
        channel = AnimationChannel(
            sampler=sampler,
            path=c.target.path,
            node=node,
            extras=c.extras,
            target_extensions=_nested_extensions(c.target.extensions, f"{c_where}.target", registry, context),
            target_extras=c.target.extras,
        )
        _generic_extensions(channel, c.extensions, c_where, registry, context)
        animation.channels.append(channel)


def _link_scene(
    scene: Scene, doc: GltfDocument, graph: AssembledGraph, registry: ExtensionRegistry, context: ExtensionContext
) -> None:
    scene_def = doc.scenes[scene.index]
    where = f"scenes[{scene.index}]"
    scene.nodes = [lookup(graph.nodes, idx, f"{where}.nodes[{i}]", "nodes") for i, idx in enumerate(scene_def.nodes)]
    _generic_extensions(scene, scene_def.extensions, where, registry, context)


def _default_scene(doc: GltfDocument, scenes: list[Scene]) -> Scene | None:
    if doc.scene is None:
        return scenes[0] if scenes else None
    if not scenes:
        raise MissingDataError(f"scene: default scene {doc.scene} referenced but the document has no scenes")
    return lookup(scenes, doc.scene, "scene", "scenes")


def _compute_node_bounds(nodes: list[Node]) -> None:
    """Bottom-up: each node's box is its mesh box unioned with its children's, in parent space."""
    for root in nodes:
        if root.parent is not None:
            continue
        for node in reversed(list(root.walk())):
            box = node.mesh.bounding_box if node.mesh is not None else BoundingBox.empty()
            for child in node.children:
                box = box.union(child.bounding_box)
            node.bounding_box = box.transformed(node.local_matrix)
