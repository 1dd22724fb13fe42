"""Tests for the per-unit semantic model."""
import pytest

from sharplint.analyzer.binder import SemanticModel, short_attribute_name
from sharplint.analyzer.lowering import lower_tree
from sharplint.analyzer.parser import LanguageParser
from sharplint.analyzer.symbols import TypeSymbol
from sharplint.analyzer.syntax import NodeKind


@pytest.fixture
def bind(catalog):
    def run(code):
        source = code.encode('utf-8')
        tree = lower_tree(LanguageParser().parse_source(source), source, "Test0.cs")
        return tree, SemanticModel(tree, catalog)
    return run


def named(tree, kind, name):
    return next(node for node in tree.nodes_of_kind(kind) if node.name == name)


def test_short_attribute_name():
    assert short_attribute_name("DataMemberAttribute") == "DataMember"
    assert short_attribute_name("DataMember") == "DataMember"
    assert short_attribute_name("Attribute") == "Attribute"


class TestDeclaredSymbols:

    def test_partial_declarations_share_a_symbol(self, bind):
        tree, model = bind("""
namespace Shop
{
    public partial class Cart { }
    public partial class Cart { }
}
""")
        first, second = [n for n in tree.nodes_of_kind(NodeKind.TYPE_DECLARATION)]
        assert model.declared_symbol(first) == model.declared_symbol(second)
        symbol = model.declared_symbol(first)
        assert symbol.full_name == "Shop.Cart"
        assert model.declarations_of(symbol) == [first, second]

    def test_nested_type_container(self, bind):
        tree, model = bind("""
namespace Shop
{
    public class Outer
    {
        public class Inner { }
    }
}
""")
        inner = model.declared_symbol(named(tree, NodeKind.TYPE_DECLARATION, "Inner"))
        assert inner.container == "Outer"
        assert inner.full_name == "Shop.Outer.Inner"

    def test_generic_arity_distinguishes_types(self, bind):
        tree, model = bind("""
public class Box { }
public class Box<T> { }

public class Holder
{
    private Box<int> _one;
    private Box _two;
}
""")
        one, two = list(tree.nodes_of_kind(NodeKind.FIELD))
        assert model.declared_type(one).arity == 1
        assert model.declared_type(two).arity == 0


class TestTypeResolution:

    def test_unknown_names_are_external(self, bind):
        tree, model = bind("""
public class Holder
{
    private Logger _logger;
}
""")
        symbol = model.declared_type(next(tree.nodes_of_kind(NodeKind.FIELD)))
        assert symbol == TypeSymbol("Logger", is_source=False)

    def test_ambiguous_names_prefer_enclosing_namespace(self, bind):
        tree, model = bind("""
namespace A
{
    public class Item { }
}

namespace B
{
    public class Item { }

    public class Holder
    {
        private Item _item;
    }
}

namespace C
{
    public class Other
    {
        private Item _item;
    }
}
""")
        in_b, in_c = list(tree.nodes_of_kind(NodeKind.FIELD))
        assert model.declared_type(in_b).namespace == "B"
        # no using and no enclosing namespace: ambiguous
        assert model.declared_type(in_c) is None

    def test_qualified_name_selects_namespace(self, bind):
        tree, model = bind("""
namespace A
{
    public class Item { }
}

namespace B
{
    public class Item { }
}

public class Holder
{
    private A.Item _item;
}
""")
        assert model.declared_type(next(tree.nodes_of_kind(NodeKind.FIELD))).namespace == "A"

    def test_referenced_type_ignores_variables(self, bind):
        tree, model = bind("""
public class Widget
{
    public static Widget Default => null;
}

public class Runner
{
    public void Run(Widget widget)
    {
        var a = Widget.Default;
        var b = widget;
    }
}
""")
        identifiers = {n.name: n for n in tree.nodes_of_kind(NodeKind.IDENTIFIER)}
        assert model.referenced_type(identifiers["Widget"]).name == "Widget"
        assert model.referenced_type(identifiers["widget"]) is None


class TestInheritance:

    def test_source_and_catalog_hierarchy(self, bind):
        tree, model = bind("""
public interface IShape { }
public class Shape : IShape { }
public class Square : Shape { }
""")
        square = model.declared_symbol(named(tree, NodeKind.TYPE_DECLARATION, "Square"))
        assert {s.name for s in model.ancestors(square)} == {"Shape", "IShape"}

        command = TypeSymbol("SqlCommand", namespace="System.Data.SqlClient", is_source=False)
        assert {s.name for s in model.ancestors(command)} == {"DbCommand", "IDbCommand"}

    def test_inheritance_graph_edges(self, bind):
        tree, model = bind("public class Base { }\npublic class Derived : Base { }\n")
        graph = model.inheritance_graph()
        derived = model.declared_symbol(named(tree, NodeKind.TYPE_DECLARATION, "Derived"))
        base = model.declared_symbol(named(tree, NodeKind.TYPE_DECLARATION, "Base"))
        assert graph.has_edge(derived, base)


class TestInvocations:

    def test_extension_method_from_catalog(self, bind):
        tree, model = bind("""
using Microsoft.Extensions.DependencyInjection;

public static class Wiring
{
    public static void Register(IServiceCollection services)
    {
        services.AddScoped<Wiring>();
    }
}
""")
        method = model.resolve_invocation(next(tree.nodes_of_kind(NodeKind.INVOCATION)))
        assert method.name == "AddScoped"
        assert method.is_extension
        assert method.parameters[0].type_display == "Microsoft.Extensions.DependencyInjection.IServiceCollection"
        assert method.type_arguments[0].name == "Wiring"

    def test_source_extension_method(self, bind):
        tree, model = bind("""
public static class CollectionHelpers
{
    public static IServiceCollection AddFeature(this IServiceCollection services) => services;
}

public class Startup
{
    public void Configure(IServiceCollection services)
    {
        services.AddFeature();
    }
}
""")
        method = model.resolve_invocation(next(tree.nodes_of_kind(NodeKind.INVOCATION)))
        assert method.is_extension
        assert method.declaration is named(tree, NodeKind.METHOD, "AddFeature")

    def test_instance_method_through_variable(self, bind):
        tree, model = bind("""
public class Worker
{
    public Report Run() => null;
}

public class Caller
{
    public void Call()
    {
        var worker = new Worker();
        worker.Run();
    }
}
""")
        method = model.resolve_invocation(next(tree.nodes_of_kind(NodeKind.INVOCATION)))
        assert method.containing_type.name == "Worker"
        assert method.return_type == TypeSymbol("Report", is_source=False)

    def test_unknown_target(self, bind):
        tree, model = bind("""
public class Caller
{
    public void Call()
    {
        Missing();
    }
}
""")
        assert model.resolve_invocation(next(tree.nodes_of_kind(NodeKind.INVOCATION))) is None
