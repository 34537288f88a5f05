import dataclasses

from rich.pretty import pprint

from helmsman import *


@dataclasses.dataclass
class Settings:
    verbose: bool = Switch("-v", descr="print more details")
    region: str = Option(default="eu-west", env="REGION", descr="target region")


settings = Container(Settings)

deploy = Command("deploy", aliases=("d",), descr="deploy services")


@deploy.action(primary=True)
def ship(
        target=Argument(descr="service to deploy"),
        port=Option("-p", type=int, default=8080, env="PORT", rules=[within(1, 65535)]),
        json=Switch(exclusive="format"),
        xml=Switch(exclusive="format"),
        settings=settings,
):
    """Deploy a service."""
    pprint({"target": target, "port": port, "json": json, "xml": xml, "settings": settings})


@deploy.before
def announce(context):
    if context.globals.verbose:
        print("deploying %s" % " ".join(context.path))


app = Dispatcher(deploy, name="demo", version="0.1.0", globals=settings, exits=[(ConnectionError, ExitCode.NETWORK_ERROR)])

if __name__ == '__main__':
    app.run()
