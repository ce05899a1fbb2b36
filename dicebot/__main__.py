import asyncio
import functools
import json
import logging
import os
import sys
import typing
import discord
import discord.ext.commands as commands
import dicebot.governor as governor
import dicebot.settings as dicebot_settings
from dicebot.roll import DiceRollError

logger = logging.getLogger("dicebot")

settings: typing.Dict[str, typing.Any] = dict(dicebot_settings.DEFAULTS)

MAX_MESSAGE_LENGTH = 2000

intents = discord.Intents.default()
intents.message_content = True

client = commands.Bot(
    command_prefix=lambda bot, message: settings["prefix"],
    intents=intents,
    status=discord.Status.idle,
)


def help_activity() -> discord.Game:
    """The "playing" status, pointing at the help command under the configured prefix."""
    return discord.Game(name="%shelp" % settings["prefix"])


def truncate(message: str) -> str:
    if len(message) <= MAX_MESSAGE_LENGTH:
        return message
    return message[: MAX_MESSAGE_LENGTH - 4] + " ..."


@client.event
async def on_ready():
    logger.info("logged in as %s", client.user)


async def run_limited(ctx: commands.Context, fn: typing.Callable[[], str]):
    """Run a CPU-bound evaluation off the event loop and send its message."""
    try:
        loop = asyncio.get_running_loop()
        message = await asyncio.wait_for(
            loop.run_in_executor(None, fn), timeout=settings["timeout"]
        )
        await ctx.send(truncate(message))
    except asyncio.TimeoutError:
        await ctx.send("Your roll took too long to evaluate. Sorry!")
    except DiceRollError as e:
        await ctx.send("Error in input: %s" % e.args[0])
    except BaseException as e:
        try:
            await ctx.send("An internal error occured. Sorry!")
        except BaseException:
            pass
        raise e


def roll_message(formula: str) -> str:
    report = governor.roll_formula(formula, **dicebot_settings.limits(settings))
    message = "**Input:** %s\n" % report.expression
    if report.number_of_rolls > 0:
        message += "**Rolled:** %s\n" % report.outcome
    return message + "**Result:** %s" % ", ".join(str(x) for x in report.results)


def rolljson_message(formula: str) -> str:
    report = governor.roll_formula(formula, **dicebot_settings.limits(settings))
    return "```json\n%s\n```" % json.dumps(report.to_json())


def rollinfo_message(formula: str) -> str:
    expression = governor.parse_checked(formula, **dicebot_settings.limits(settings))
    return "**Input:** %s\n**Size:** %s\n**Dice:** %s\n**Results:** %s" % (
        expression,
        expression.size(),
        expression.number_of_rolls(),
        expression.number_of_results(),
    )


@client.command(
    name="roll",
    brief="roll dice",
    description="""!roll <expr>

Parameters:
    expr - The formula to roll.

Result:
    Rolls a dice formula and shows each die drawn. You can use:
        2d6      - Roll two six-sided dice and add them up.
        d20, t20 - Roll one twenty-sided die.
        3.d6     - Roll three six-sided dice and keep all three results.
        1,d4,d6  - Several results side by side.
        + - *    - Basic math. Applied to every pair of results,
                   so (1,2) + 10 gives 11, 12.
        < > =    - Comparisons, giving 1 for true and 0 for false.
        max X, min X, sum X
                 - Best, worst or total of the results of X.
""",
)
async def roll_(ctx: commands.Context, *args: str):
    await run_limited(ctx, functools.partial(roll_message, " ".join(args)))


@client.command(
    brief="roll dice, answer in JSON",
    description="""!rolljson <expr>

Parameters:
    expr - The formula to roll.

Result:
    Same as !roll, but answers with the parsed formula, the dice drawn and
    the results as JSON.
""",
)
async def rolljson(ctx: commands.Context, *args: str):
    await run_limited(ctx, functools.partial(rolljson_message, " ".join(args)))


@client.command(
    brief="describe a formula without rolling it",
    description="""!rollinfo <expr>

Parameters:
    expr - The formula to describe.

Result:
    Shows how the formula was understood, its size, how many dice it rolls
    and how many results it gives.
""",
)
async def rollinfo(ctx: commands.Context, *args: str):
    await run_limited(ctx, functools.partial(rollinfo_message, " ".join(args)))


def main(argv: typing.List[str] = sys.argv) -> int:
    settings_file = argv[1] if len(argv) > 1 else "settings.yaml"
    if not os.path.exists(settings_file):
        dicebot_settings.install_default(settings_file)
        print(
            "%s not detected!"
            " A default one has been provided."
            " Please edit that file and re-run this program." % settings_file
        )
        return 1

    try:
        settings.update(dicebot_settings.load(settings_file))
    except dicebot_settings.SettingsError as e:
        print("error: %s" % e)
        return 1

    logging.basicConfig(
        level=settings["log_level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "max formula size %s, depth %s, results %s, timeout %ss",
        settings["max_size"],
        settings["max_depth"],
        settings["max_results"],
        settings["timeout"],
    )

    client.activity = help_activity()
    client.run(settings["token"], log_handler=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
