"""Integration tests for MB1050 over tree-sitter parsed C#."""
from sharplint.rules.base import Severity

from conftest import reported_classes


SCENARIO_B = """
using Microsoft.Extensions.DependencyInjection;

namespace App
{
    public interface IBar { }

    public class Bar : IBar { }

    public static class ServiceCollectionExtensions
    {
        public static IServiceCollection AddApp(this IServiceCollection services)
        {
            services.AddScoped<IBar, Bar>();
            return services;
        }
    }
}
"""


class TestScenarios:

    def test_never_mentioned_class_is_reported(self, analyze):
        diagnostics = analyze("""
namespace App
{
    public class Foo { }
}
""")
        assert reported_classes(diagnostics) == ["Foo"]
        diagnostic = diagnostics[0]
        assert diagnostic.rule_id == "MB1050"
        assert diagnostic.severity is Severity.WARNING
        assert diagnostic.message == (
            "Class 'Foo' is never used or used only once or used only registered in DI but not used elsewhere"
        )
        assert (diagnostic.location.line, diagnostic.location.column) == (4, 5)

    def test_di_only_registration_is_reported(self, analyze):
        assert reported_classes(analyze(SCENARIO_B)) == ["Bar"]

    def test_two_constructor_parameters_are_enough(self, analyze):
        diagnostics = analyze("""
namespace App
{
    public class Baz { }

    public class First
    {
        public First(Baz baz) { }
    }

    public class Second
    {
        public Second(Baz baz) { }
    }
}
""")
        reported = reported_classes(diagnostics)
        assert "Baz" not in reported
        assert sorted(reported) == ["First", "Second"]

    def test_registration_then_direct_construction(self, analyze):
        diagnostics = analyze("""
using Microsoft.Extensions.DependencyInjection;

public class Qux { }

public static class Registrations
{
    public static void Register(IServiceCollection services)
    {
        services.AddSingleton<Qux>();
        var qux = new Qux();
    }
}
""")
        assert reported_classes(diagnostics) == ["Registrations"]


class TestUsageCounting:

    def test_single_usage_is_reported(self, analyze):
        diagnostics = analyze("""
public class Base { }

public class Derived : Base { }
""")
        assert reported_classes(diagnostics) == ["Base", "Derived"]

    def test_explicit_local_and_construction_count_twice(self, analyze):
        diagnostics = analyze("""
public class Foo { }

public class Runner
{
    public void Run()
    {
        Foo foo = new Foo();
    }
}
""")
        assert "Foo" not in reported_classes(diagnostics)

    def test_var_counts_as_a_usage_of_the_inferred_type(self, analyze):
        diagnostics = analyze("""
public class Foo { }

public class Runner
{
    public void Run()
    {
        var foo = new Foo();
    }
}
""")
        assert "Foo" not in reported_classes(diagnostics)

    def test_var_bound_to_an_invocation_result(self, analyze):
        diagnostics = analyze("""
public class Report { }

public class Worker
{
    public Report Build() => null;
}

public class Runner
{
    public void Run(Worker worker)
    {
        var report = worker.Build();
    }
}
""")
        # return type of Build and the inferred type of report
        assert "Report" not in reported_classes(diagnostics)

    def test_object_initializer_member_is_not_a_type_usage(self, analyze):
        diagnostics = analyze("""
public class Address { }

public class Order
{
    public Address Address { get; set; }
}

public class Runner
{
    public void Run()
    {
        var order = new Order { Address = null };
    }
}
""")
        # only the property type mentions Address
        assert "Address" in reported_classes(diagnostics)
        assert "Order" not in reported_classes(diagnostics)

    def test_using_alias_resolves_to_its_target(self, analyze):
        diagnostics = analyze("""
using Alias = Shop.Foo;

namespace Shop
{
    public class Foo { }
}

public class Runner
{
    public Alias First() => null;

    public Alias Second() => null;
}
""")
        assert "Foo" not in reported_classes(diagnostics)

    def test_using_alias_directive_alone_is_not_a_usage(self, analyze):
        diagnostics = analyze("""
using Alias = Shop.Foo;

namespace Shop
{
    public class Foo { }
}

public class Runner
{
    public Alias Only() => null;
}
""")
        assert "Foo" in reported_classes(diagnostics)

    def test_static_member_receivers_count(self, analyze):
        diagnostics = analyze("""
public static class Helper
{
    public static int Twice(int value) => value * 2;
}

public class Runner
{
    public int Run()
    {
        return Helper.Twice(1) + Helper.Twice(2);
    }
}
""")
        assert "Helper" not in reported_classes(diagnostics)

    def test_generic_usages_resolve_to_definition(self, analyze):
        diagnostics = analyze("""
public class Box<T> { }

public class Holder
{
    private Box<int> _numbers;
    private Box<string> _names;
}
""")
        assert reported_classes(diagnostics) == ["Holder"]

    def test_generic_argument_is_a_usage(self, analyze):
        diagnostics = analyze("""
using System.Collections.Generic;

public class Item { }

public class Basket
{
    public List<Item> Items { get; } = new List<Item>();
}
""")
        assert "Item" not in reported_classes(diagnostics)

    def test_nameof_and_typeof_count(self, analyze):
        diagnostics = analyze("""
public class Target { }

public class Inspector
{
    public string Describe()
    {
        return nameof(Target) + typeof(Target).Name;
    }
}
""")
        assert "Target" not in reported_classes(diagnostics)

    def test_variable_named_like_a_class_is_not_a_usage(self, analyze):
        diagnostics = analyze("""
public class Widget { }

public class Factory
{
    public Widget Make(Widget Widget)
    {
        return Widget;
    }
}
""")
        # the return type and the parameter type; the returned variable is not a type usage
        assert "Widget" not in reported_classes(diagnostics)


class TestDiRegistrationForms:

    def test_typeof_registration(self, analyze):
        diagnostics = analyze("""
using Microsoft.Extensions.DependencyInjection;

public interface IRepo { }

public class Repo : IRepo { }

public static class Wiring
{
    public static void Register(IServiceCollection services)
    {
        services.AddScoped(typeof(IRepo), typeof(Repo));
    }
}
""")
        assert sorted(reported_classes(diagnostics)) == ["Repo", "Wiring"]

    def test_try_add_registration(self, analyze):
        diagnostics = analyze("""
using Microsoft.Extensions.DependencyInjection;
using Microsoft.Extensions.DependencyInjection.Extensions;

public class Clock { }

public static class Wiring
{
    public static void Register(IServiceCollection services)
    {
        services.TryAddSingleton<Clock>();
        services.TryAddSingleton<Clock>();
    }
}
""")
        assert "Clock" in reported_classes(diagnostics)

    def test_registration_in_top_level_statements(self, analyze):
        diagnostics = analyze("""
using Microsoft.Extensions.DependencyInjection;

var builder = WebApplication.CreateBuilder(args);
builder.Services.AddTransient<Mailer>();
var app = builder.Build();
app.Run();

public class Mailer { }
""")
        assert reported_classes(diagnostics) == ["Mailer"]

    def test_registration_with_factory_is_not_a_usage_of_the_factory_result(self, analyze):
        diagnostics = analyze("""
using Microsoft.Extensions.DependencyInjection;

public interface IClock { }

public class SystemClock : IClock { }

public static class Wiring
{
    public static void Register(IServiceCollection services)
    {
        services.AddSingleton<IClock>(provider => new SystemClock());
    }
}
""")
        # constructed once inside the factory
        assert "SystemClock" in reported_classes(diagnostics)


class TestExclusions:

    def test_entry_points_and_extension_holders(self, analyze):
        diagnostics = analyze("""
public class Program { }

public class Startup { }

public static class StringExtensions { }
""")
        assert reported_classes(diagnostics) == []

    def test_attributed_classes(self, analyze):
        diagnostics = analyze("""
using System;

[Serializable]
public class Payload { }

public partial class Split { }

[Obsolete]
public partial class Split { }
""")
        assert reported_classes(diagnostics) == []

    def test_excluded_namespaces(self, analyze):
        diagnostics = analyze("""
namespace Microsoft.Internal
{
    public class A { }
}

namespace Shop.Infrastructure
{
    public class B { }
}

namespace Shop.Configuration.Options
{
    public class C { }
}

namespace Shop.Domain
{
    public class D { }
}
""")
        assert reported_classes(diagnostics) == ["D"]

    def test_only_classes_are_tracked(self, analyze):
        diagnostics = analyze("""
public record Point(int X, int Y);

public struct Size { }

public interface IShape { }

public enum Color { Red }
""")
        assert reported_classes(diagnostics) == []


class TestUnitBehaviour:

    def test_partial_declarations_collapse(self, analyze):
        diagnostics = analyze("""
public partial class Split { }

public partial class Split
{
    public void Run() { }
}
""")
        assert reported_classes(diagnostics) == ["Split"]
        assert diagnostics[0].location.line == 2

    def test_file_scoped_namespace(self, analyze):
        diagnostics = analyze("""
namespace Shop.Infrastructure;

public class Hidden { }
""")
        assert reported_classes(diagnostics) == []

    def test_rerun_is_identical(self, analyze):
        first = analyze(SCENARIO_B)
        second = analyze(SCENARIO_B)
        assert first == second

    def test_everything_used_yields_nothing(self, analyze):
        diagnostics = analyze("""
public class Program
{
    public static void Main()
    {
        Worker first = new Worker();
        first.Run();
    }
}

public class Worker
{
    public void Run() { }
}
""")
        assert diagnostics == []

    def test_diagnostics_are_sorted_by_position(self, analyze):
        diagnostics = analyze("""
public class Zeta { }
public class Alpha { }
""")
        assert [d.location.line for d in diagnostics] == [2, 3]
