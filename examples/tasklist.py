"""
Lists the tasks in a calendar, sorted by summary, and toggles the
done-state of one of them:

    python examples/tasklist.py        # list the tasks
    python examples/tasklist.py 3      # toggle task number 3, and save

The connection is set up by get_davclient, i.e. from the environment
(DAVTASKS_URL, DAVTASKS_USERNAME, DAVTASKS_PASSWORD) or a config file.
The calendar picked is the one given by calendar_name in the config,
or the first task calendar found.
"""
import sys

## We'll try to use the local davtasks library, not the system-installed
sys.path.insert(0, "..")
sys.path.insert(0, ".")

from davtasks import get_davclient


def print_tasks(tasks):
    for i, task in enumerate(tasks, start=1):
        print("%i. [%s] %s" % (i, "X" if task.is_done else " ", task.summary))


def run(client, argv):
    calendars = client.calendars()
    for calendar in calendars:
        print("Calendar: %s" % calendar)
    print()

    task_list = client.fetch(client.calendar())
    tasks = task_list.sorted_by_summary()
    print_tasks(tasks)

    if len(argv) > 1 and argv[1].isdigit():
        i = int(argv[1])
        if 0 < i <= len(tasks):
            print("Toggling task %i" % i)
            client.toggle(task_list, tasks[i - 1].ref)
    return task_list


def main(argv=None):
    client = get_davclient()
    if client is None:
        print("no connection parameters found, see the README", file=sys.stderr)
        return 1
    with client:
        run(client, argv if argv is not None else sys.argv)
    return 0


if __name__ == "__main__":
    sys.exit(main())
