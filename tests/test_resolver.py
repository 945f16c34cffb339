"""
Unit tests for openapi_filter.resolver module.
"""

import unittest

from openapi_filter.resolver import (
    COMPONENT_TYPES,
    ComponentResolver,
    EdgeKind,
    classify_key,
    parse_component_ref,
)


def schema_ref(name):
    return {'$ref': f'#/components/schemas/{name}'}


class TestParseComponentRef(unittest.TestCase):
    """Test cases for parse_component_ref."""

    def test_local_component_ref(self):
        self.assertEqual(parse_component_ref('#/components/schemas/User'), ('schemas', 'User'))
        self.assertEqual(
            parse_component_ref('#/components/requestBodies/NewUser'),
            ('requestBodies', 'NewUser'),
        )

    def test_pointer_into_component(self):
        """Test that deeper pointers resolve to the enclosing component."""
        self.assertEqual(
            parse_component_ref('#/components/schemas/User/properties/id'),
            ('schemas', 'User'),
        )

    def test_escaped_name(self):
        self.assertEqual(
            parse_component_ref('#/components/schemas/a~1b~0c'),
            ('schemas', 'a/b~c'),
        )

    def test_percent_encoded_name(self):
        self.assertEqual(
            parse_component_ref('#/components/schemas/Foo%20Bar'),
            ('schemas', 'Foo Bar'),
        )

    def test_non_component_refs_ignored(self):
        self.assertIsNone(parse_component_ref('other.yaml#/components/schemas/User'))
        self.assertIsNone(parse_component_ref('#/paths/~1users'))
        self.assertIsNone(parse_component_ref('#/componentsX/schemas/User'))

    def test_malformed_refs(self):
        with self.assertRaises(ValueError):
            parse_component_ref('#/components/schemas')
        with self.assertRaises(ValueError):
            parse_component_ref('#/components/schemas/')
        with self.assertRaises(ValueError):
            parse_component_ref(42)


class TestClassifyKey(unittest.TestCase):
    """Test cases for edge classification."""

    def test_known_keys(self):
        self.assertEqual(classify_key('$ref'), EdgeKind.REFERENCE)
        self.assertEqual(classify_key('oneOf'), EdgeKind.COMPOSITION)
        self.assertEqual(classify_key('properties'), EdgeKind.PROPERTY)
        self.assertEqual(classify_key('additionalProperties'), EdgeKind.ITEM)
        self.assertEqual(classify_key('security'), EdgeKind.SECURITY)
        self.assertEqual(classify_key('x-responseDTO'), EdgeKind.EXTENSION)

    def test_unknown_key_is_generic(self):
        self.assertEqual(classify_key('responses'), EdgeKind.GENERIC)


class TestComponentResolver(unittest.TestCase):
    """Test cases for ComponentResolver class."""

    def setUp(self):
        """Set up test fixtures."""
        self.spec = {
            'openapi': '3.0.0',
            'components': {
                'schemas': {
                    'User': {
                        'type': 'object',
                        'properties': {
                            'id': {'type': 'integer'},
                            'profile': schema_ref('UserProfile'),
                            'groups': {'type': 'array', 'items': schema_ref('Group')},
                        },
                    },
                    'UserProfile': {
                        'type': 'object',
                        'additionalProperties': schema_ref('Attribute'),
                    },
                    'Attribute': {'type': 'string'},
                    'Group': {
                        'type': 'object',
                        'properties': {'members': {'type': 'array', 'items': schema_ref('User')}},
                    },
                    'Node': {
                        'type': 'object',
                        'properties': {'children': {'type': 'array', 'items': schema_ref('Node')}},
                    },
                    'Pet': {
                        'oneOf': [schema_ref('Cat'), schema_ref('Dog')],
                        'discriminator': {
                            'propertyName': 'kind',
                            'mapping': {'cat': '#/components/schemas/Cat', 'lizard': 'Lizard'},
                        },
                    },
                    'Cat': {'allOf': [schema_ref('Animal')]},
                    'Dog': {'anyOf': [schema_ref('Animal')]},
                    'Animal': {'type': 'object'},
                    'Lizard': {'type': 'object'},
                    'Envelope': {'type': 'object', 'x-responseDTO': 'Payload'},
                    'Payload': {'type': 'object'},
                    'Error': {'type': 'object', 'properties': {'code': schema_ref('ErrorCode')}},
                    'ErrorCode': {'type': 'string'},
                    'Unused': {'type': 'object'},
                },
                'parameters': {
                    'Page': {'in': 'query', 'name': 'page', 'schema': schema_ref('PageNumber')},
                },
                'responses': {
                    'NotFound': {
                        'description': 'missing',
                        'content': {'application/json': {'schema': schema_ref('Problem')}},
                    },
                },
                'securitySchemes': {
                    'bearer': {'type': 'http', 'scheme': 'bearer'},
                    'apiKey': {'type': 'apiKey', 'in': 'header', 'name': 'X-Key'},
                },
            },
        }
        self.spec['components']['schemas']['PageNumber'] = {'type': 'integer'}
        self.spec['components']['schemas']['Problem'] = {'type': 'object'}

    def resolve(self, paths, **kwargs):
        resolver = ComponentResolver(self.spec)
        return resolver.resolve(paths, **kwargs)

    def test_transitive_references(self):
        """Test that nested and transitive references are all tracked."""
        paths = {'/users': {'get': {'responses': {'200': {
            'content': {'application/json': {'schema': schema_ref('User')}},
        }}}}}

        reachable = self.resolve(paths)

        self.assertTrue(
            {'User', 'UserProfile', 'Attribute', 'Group'}.issubset(reachable['schemas'])
        )
        self.assertNotIn('Unused', reachable['schemas'])
        self.assertNotIn('Node', reachable['schemas'])

    def test_cycles_terminate(self):
        """Test that self and mutual references are tracked once."""
        resolver = ComponentResolver(self.spec)
        resolver.track('schemas', 'Node')
        resolver.track('schemas', 'Group')
        reachable = resolver.close()

        self.assertIn('Node', reachable['schemas'])
        self.assertIn('User', reachable['schemas'])
        self.assertFalse(resolver.track('schemas', 'Node'))

    def test_composition_and_discriminator(self):
        """Test that composition members and discriminator targets are followed."""
        paths = {'/pets': {'get': {'responses': {'200': {
            'content': {'application/json': {'schema': schema_ref('Pet')}},
        }}}}}

        reachable = self.resolve(paths)

        self.assertTrue({'Pet', 'Cat', 'Dog', 'Animal', 'Lizard'}.issubset(reachable['schemas']))

    def test_response_dto_extension(self):
        """Test that the response DTO hint tracks a schema by name."""
        paths = {'/e': {'get': {'x-responseDTO': 'Envelope'}}}

        reachable = self.resolve(paths)

        self.assertIn('Envelope', reachable['schemas'])
        self.assertIn('Payload', reachable['schemas'])

    def test_parameters_and_responses(self):
        """Test parameter and response references across categories."""
        paths = {'/items': {
            'parameters': [{'$ref': '#/components/parameters/Page'}],
            'get': {'responses': {'404': {'$ref': '#/components/responses/NotFound'}}},
        }}

        reachable = self.resolve(paths)

        self.assertEqual(reachable['parameters'], {'Page'})
        self.assertEqual(reachable['responses'], {'NotFound'})
        self.assertIn('PageNumber', reachable['schemas'])
        self.assertIn('Problem', reachable['schemas'])

    def test_security_requirements(self):
        """Test that operation and root security names are tracked."""
        paths = {'/me': {'get': {'security': [{'bearer': []}]}}}

        reachable = self.resolve(paths, security=[{'apiKey': []}, {}])

        self.assertEqual(reachable['securitySchemes'], {'bearer', 'apiKey'})

    def test_forced_error_schemas(self):
        """Test that conventional error schemas present in the source are forced in."""
        reachable = self.resolve({})

        self.assertIn('Error', reachable['schemas'])
        self.assertIn('ErrorCode', reachable['schemas'])
        self.assertNotIn('Failure', reachable['schemas'])

    def test_always_include(self):
        """Test that forced names are seeded everywhere and scanned."""
        reachable = self.resolve({}, always_include=['User'])

        for category in COMPONENT_TYPES:
            self.assertIn('User', reachable[category])
        self.assertIn('UserProfile', reachable['schemas'])

    def test_property_named_like_keyword(self):
        """Test that property names are never mistaken for keywords."""
        self.spec['components']['schemas']['Odd'] = {
            'properties': {
                'security': schema_ref('Attribute'),
                '$ref': {'type': 'string'},
            },
        }
        resolver = ComponentResolver(self.spec)
        resolver.track('schemas', 'Odd')
        reachable = resolver.close()

        self.assertIn('Attribute', reachable['schemas'])
        self.assertEqual(reachable['securitySchemes'], set())

    def test_malformed_reference_warns(self):
        """Test that malformed references are skipped with a warning."""
        paths = {'/bad': {'get': {'responses': {'200': {'content': {
            'application/json': {'schema': {'$ref': '#/components/schemas'}},
            'text/plain': {'schema': schema_ref('Attribute')},
        }}}}}}

        with self.assertLogs('openapi_filter.resolver', level='WARNING') as logs:
            reachable = self.resolve(paths)

        self.assertIn('Invalid $ref', logs.output[0])
        self.assertIn('Attribute', reachable['schemas'])

    def test_missing_component_is_noop(self):
        """Test that a reference to an absent component tracks only the name."""
        paths = {'/x': {'get': {'parameters': [schema_ref('Ghost')]}}}

        reachable = self.resolve(paths)

        self.assertIn('Ghost', reachable['schemas'])

    def test_no_components(self):
        """Test that a document without components resolves cleanly."""
        resolver = ComponentResolver({'paths': {}})
        paths = {'/x': {'get': {'responses': {'200': {'content': {
            'application/json': {'schema': schema_ref('User')},
        }}}}}}

        reachable = resolver.resolve(paths)

        self.assertEqual(reachable['schemas'], {'User'})
        for category in COMPONENT_TYPES:
            if category != 'schemas':
                self.assertEqual(reachable[category], set())

    def test_identity_not_equality(self):
        """Test that equal but distinct nodes are both scanned."""
        first = {'schema': schema_ref('Attribute')}
        second = {'schema': schema_ref('Payload')}
        shared = {'a': first, 'b': first, 'c': second}

        resolver = ComponentResolver(self.spec)
        resolver.collect_references(shared)
        resolver.collect_references([{'schema': schema_ref('Animal')}, {'schema': schema_ref('Animal')}])

        self.assertEqual(resolver.reachable['schemas'], {'Attribute', 'Payload', 'Animal'})

    def test_self_referencing_object(self):
        """Test that a structurally cyclic node does not recurse forever."""
        node = {'type': 'object', 'properties': {}}
        node['properties']['self'] = node
        node['items'] = [node]

        resolver = ComponentResolver(self.spec)
        resolver.collect_references(node)

        self.assertEqual(resolver.reachable['schemas'], set())

    def test_internal_component_not_scanned(self):
        """Test that internal components are tracked but not followed when excluded."""
        self.spec['components']['schemas']['User']['x-internal'] = True
        paths = {'/users': {'get': {'parameters': [schema_ref('User')]}}}

        included = ComponentResolver(self.spec).resolve(paths)
        excluded = ComponentResolver(self.spec, exclude_internal=True).resolve(paths)

        self.assertIn('UserProfile', included['schemas'])
        self.assertIn('User', excluded['schemas'])
        self.assertNotIn('UserProfile', excluded['schemas'])
        self.assertNotIn('Group', excluded['schemas'])

    def test_source_not_modified(self):
        """Test that resolving leaves the source untouched."""
        import copy
        before = copy.deepcopy(self.spec)

        self.resolve({'/u': {'get': {'x-responseDTO': 'User'}}}, always_include=['Pet'])

        self.assertEqual(self.spec, before)


if __name__ == '__main__':
    unittest.main()
