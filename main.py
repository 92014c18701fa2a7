from relay import *
from relay.logs import configure_logging


class Deployer(Handler):
    """
    usage: main.py <command> [--env=<name>] [-v] [--no-colors]

    commands:
        deploy <service>    deploy a service
        status              show the state of every service
        restart <service>   stop then deploy a service again
    """
    require_arguments = True

    def flag_v(self):
        configure_logging(verbosity=2, colorful=self.colorful)

    def run_deploy(self, service):
        env = self.get_option("env", "staging")
        self.print_info(self.color_text(f"deploying {service} to {env}", "light-green"))

    def run_status(self):
        self.print_table([("service-a", "up"), ("service-b", "down")], headers=("service", "state"))

    class Restart(Handler):
        """
        usage: main.py restart <service> [--force]
        """

        def run(self, service):
            if not self.has_flag("force") and not self.confirm(f"restart {service}?"):
                self.bail("restart cancelled")
            self.manual_run(["deploy", service], merge=False)


if __name__ == '__main__':
    invoke(Deployer)
