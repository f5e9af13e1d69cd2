import sys

from hiercmd import *
from hiercmd.logging_config import configure_logging


async def do_thing_list(level):
    level.add_column("name", 16, True)
    level.add_column("number", 6, False)
    level.usage_args(None)

    if (arguments := args(level)) is None:
        return
    table = arguments.table()

    table.add_row(Row().add_str("name", "Thing One").add_u64("number", 1))
    table.add_row(Row().add_str("name", "Thing Two").add_u64("number", 2))

    sys.stdout.write(table.output())


async def do_thing(level):
    level.cmd("list", "list things", do_thing_list)
    await dispatch(level)


async def do_info(level):
    level.usage_args("[THING...]")
    if (arguments := args(level)) is None:
        return
    for index, argument in enumerate(arguments.args()):
        print("[%02d] %s" % (index, argument))


async def do_nothing(level):
    no_args(level)


async def do_check(level):
    level.usage_args("WORD")
    if (arguments := args(level)) is None:
        return
    if len(arguments.args()) != 1:
        bad_args(level, "specify exactly one word")


async def do_withreq(level):
    level.reqopt("a", "first", "first letter", "LETTER")
    level.reqopt("", "second", "second letter", "LETTER")
    level.reqopt("c", "", "third letter", "LETTER")
    level.optopt("x", "", "optional extra letter", "LETTER")
    if (arguments := args(level)) is None:
        return
    for name in ("a", "second", "c"):
        print("%s = %s" % (name, arguments.opts().opt_str(name)))
    for name in ("x",):
        print("%s = %r" % (name, arguments.opts().opt_str(name)))


async def trial():
    level = Level("trial")
    level.cmd("info", "get information", do_info)
    level.cmda("thing", "th", "manage things", do_thing)
    level.cmd("nothing", "do nothing", do_nothing)
    level.cmd("check", "check to see if a word is valid", do_check)
    level.cmd("withreq", "try required arguments", do_withreq)

    level.optflag("x", "", "extend")

    if (selection := sel(level)) is None:
        return
    if selection.opts().opt_present("x"):
        print("eXtended!")

    await selection.run()


if __name__ == '__main__':
    configure_logging()
    main(trial)
